"""Tests for the certificate record store."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from certanchor.core.errors import DuplicateCertificateError, StorageError
from certanchor.modules.certificates import CertificateRecordStore, NewCertificate


def _new(certificate_hash: str = "a" * 64, **fields: str) -> NewCertificate:
    return NewCertificate(
        student_ref="student-7",
        issue_date=date(2024, 7, 1),
        fields=fields or {"studentName": "Grace Hopper"},
        certificate_hash=certificate_hash,
        anchor_ref="local:0x" + "00" * 32,
    )


@pytest.mark.asyncio
async def test_insert_then_lookup_by_hash_and_id(store: CertificateRecordStore) -> None:
    certificate_id = await store.insert(_new(department="Navy"))

    by_hash = await store.get_by_hash("a" * 64)
    by_id = await store.get_by_id(certificate_id)

    assert by_hash is not None and by_id is not None
    assert by_hash == by_id
    assert by_hash.id == certificate_id
    assert by_hash.fields == {"department": "Navy"}
    assert by_hash.issue_date == date(2024, 7, 1)
    assert by_hash.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_missing_lookups_return_none(store: CertificateRecordStore) -> None:
    assert await store.get_by_hash("f" * 64) is None
    assert await store.get_by_id(uuid4()) is None


@pytest.mark.asyncio
async def test_duplicate_hash_is_rejected(store: CertificateRecordStore) -> None:
    await store.insert(_new())
    with pytest.raises(DuplicateCertificateError):
        await store.insert(_new())


@pytest.mark.asyncio
async def test_verification_history_and_stats(store: CertificateRecordStore) -> None:
    first = await store.insert(_new("a" * 64))
    second = await store.insert(_new("b" * 64))
    start = datetime(2024, 7, 2, 9, 0, tzinfo=UTC)

    await store.record_verification(first, is_valid=True, verified_at=start)
    await store.record_verification(first, is_valid=False, verified_at=start + timedelta(hours=1))
    await store.record_verification(second, is_valid=True, verified_at=start + timedelta(hours=2))

    history = await store.list_verifications(limit=2)
    assert [entry.certificate_hash for entry in history] == ["b" * 64, "a" * 64]
    assert history[0].verified_at == start + timedelta(hours=2)
    assert history[1].is_valid is False

    assert await store.count_verifications(first) == 2
    stats = await store.stats()
    assert stats.certificates == 2
    assert stats.verifications == 3
    assert stats.valid_verifications == 2
    assert stats.invalid_verifications == 1


@pytest.mark.asyncio
async def test_empty_store_stats(store: CertificateRecordStore) -> None:
    stats = await store.stats()
    assert (stats.certificates, stats.verifications) == (0, 0)
    assert await store.list_verifications() == []


@pytest.mark.asyncio
async def test_database_failures_raise_storage_error(failing_session_factory) -> None:
    store = CertificateRecordStore(failing_session_factory)

    with pytest.raises(StorageError):
        await store.get_by_hash("a" * 64)
    with pytest.raises(StorageError):
        await store.insert(_new())
    with pytest.raises(StorageError):
        await store.record_verification(uuid4(), is_valid=True)
    with pytest.raises(StorageError):
        await store.stats()
