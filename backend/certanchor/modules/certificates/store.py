"""
Relational store for certificate records and the verification audit trail.

Every method opens its own short-lived session: an audit write that fails
never rolls back anything else. Lookups always return a defined type (a
record, ``None`` or a list), never a bare driver row.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certanchor.core.errors import DuplicateCertificateError, StorageError
from certanchor.db.models import Certificate, VerificationRecord
from certanchor.modules.certificates.schemas import (
    CertificateRecord,
    CertificateStats,
    NewCertificate,
    VerificationEntry,
)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_record(row: Certificate) -> CertificateRecord:
    return CertificateRecord(
        id=row.id,
        student_ref=row.student_ref,
        issue_date=row.issue_date,
        fields=dict(row.fields or {}),
        certificate_hash=row.certificate_hash,
        anchor_ref=row.anchor_ref,
        created_at=_as_utc(row.created_at),
    )


class CertificateRecordStore:
    """Read/write contract over the ``certificates`` and ``verification_records`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_hash(self, certificate_hash: str) -> CertificateRecord | None:
        query = select(Certificate).where(Certificate.certificate_hash == certificate_hash)
        try:
            async with self._session_factory() as session:
                row = (await session.execute(query)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load certificate: {exc}") from exc
        return _to_record(row) if row is not None else None

    async def get_by_id(self, certificate_id: UUID) -> CertificateRecord | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Certificate, certificate_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load certificate: {exc}") from exc
        return _to_record(row) if row is not None else None

    async def insert(self, certificate: NewCertificate) -> UUID:
        row_id = uuid4()
        row = Certificate(
            id=row_id,
            student_ref=certificate.student_ref,
            issue_date=certificate.issue_date,
            fields=dict(certificate.fields),
            certificate_hash=certificate.certificate_hash,
            anchor_ref=certificate.anchor_ref,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except IntegrityError as exc:
            raise DuplicateCertificateError(
                f"Certificate {certificate.certificate_hash} already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not store certificate: {exc}") from exc
        return row_id

    async def record_verification(
        self,
        certificate_id: UUID,
        *,
        is_valid: bool,
        verified_at: datetime | None = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    VerificationRecord(
                        certificate_id=certificate_id,
                        is_valid=is_valid,
                        verified_at=verified_at or datetime.now(UTC),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not record verification: {exc}") from exc

    async def list_verifications(self, *, limit: int = 50) -> list[VerificationEntry]:
        """Most recent verification attempts, newest first."""
        query = (
            select(VerificationRecord, Certificate.certificate_hash)
            .join(Certificate, VerificationRecord.certificate_id == Certificate.id)
            .order_by(VerificationRecord.verified_at.desc(), VerificationRecord.id.desc())
            .limit(max(1, limit))
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load verification history: {exc}") from exc
        return [
            VerificationEntry(
                id=record.id,
                certificate_id=record.certificate_id,
                certificate_hash=certificate_hash,
                verified_at=_as_utc(record.verified_at),
                is_valid=record.is_valid,
            )
            for record, certificate_hash in rows
        ]

    async def count_verifications(self, certificate_id: UUID) -> int:
        query = select(func.count(VerificationRecord.id)).where(
            VerificationRecord.certificate_id == certificate_id
        )
        try:
            async with self._session_factory() as session:
                return int((await session.execute(query)).scalar_one())
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not count verifications: {exc}") from exc

    async def stats(self) -> CertificateStats:
        certificate_count = select(func.count(Certificate.id))
        verification_counts = select(
            VerificationRecord.is_valid, func.count(VerificationRecord.id)
        ).group_by(VerificationRecord.is_valid)
        try:
            async with self._session_factory() as session:
                certificates = int((await session.execute(certificate_count)).scalar_one())
                by_outcome = {
                    bool(is_valid): int(count)
                    for is_valid, count in (await session.execute(verification_counts)).all()
                }
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not compute statistics: {exc}") from exc
        valid = by_outcome.get(True, 0)
        invalid = by_outcome.get(False, 0)
        return CertificateStats(
            certificates=certificates,
            verifications=valid + invalid,
            valid_verifications=valid,
            invalid_verifications=invalid,
        )
