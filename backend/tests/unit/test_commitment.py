"""Tests for certificate hashes and salted commitments."""

from __future__ import annotations

import hashlib

import pytest

from certanchor.core.crypto.canonicalization import canonicalize_jcs_bytes
from certanchor.core.crypto.commitment import (
    compute_certificate_hash,
    compute_commitment,
    generate_salt,
)

FIELDS = {
    "studentName": "Ada Lovelace",
    "department": "Computer Science",
    "registrationNumber": "CS-042",
    "finalScore": "92",
}


class TestComputeCertificateHash:
    def test_is_deterministic(self) -> None:
        assert compute_certificate_hash(FIELDS) == compute_certificate_hash(FIELDS)

    def test_is_hex_sha256(self) -> None:
        digest = compute_certificate_hash(FIELDS)
        assert len(digest) == 64
        int(digest, 16)

    def test_insertion_order_does_not_matter(self) -> None:
        reversed_fields = dict(reversed(list(FIELDS.items())))
        assert list(reversed_fields) != list(FIELDS)
        assert compute_certificate_hash(reversed_fields) == compute_certificate_hash(FIELDS)

    @pytest.mark.parametrize("name", sorted(FIELDS))
    def test_single_character_change_changes_hash(self, name: str) -> None:
        tampered = dict(FIELDS)
        value = tampered[name]
        tampered[name] = value[:-1] + ("X" if value[-1] != "X" else "Y")
        assert compute_certificate_hash(tampered) != compute_certificate_hash(FIELDS)

    def test_renaming_a_field_changes_hash(self) -> None:
        renamed = {("name" if k == "studentName" else k): v for k, v in FIELDS.items()}
        assert compute_certificate_hash(renamed) != compute_certificate_hash(FIELDS)

    def test_matches_canonical_bytes(self) -> None:
        expected = hashlib.sha256(canonicalize_jcs_bytes(FIELDS)).hexdigest()
        assert compute_certificate_hash(FIELDS) == expected

    def test_unicode_values_are_supported(self) -> None:
        fields = {"studentName": "Émilie du Châtelet"}
        assert compute_certificate_hash(fields) == compute_certificate_hash(dict(fields))

    def test_non_string_value_raises(self) -> None:
        with pytest.raises(TypeError, match="finalScore"):
            compute_certificate_hash({"finalScore": 92})  # type: ignore[dict-item]

    def test_non_string_name_raises(self) -> None:
        with pytest.raises(TypeError):
            compute_certificate_hash({1: "one"})  # type: ignore[dict-item]


class TestComputeCommitment:
    def test_salt_changes_commitment(self) -> None:
        assert compute_commitment(FIELDS, "a" * 64) != compute_commitment(FIELDS, "b" * 64)

    def test_is_deterministic_for_fields_and_salt(self) -> None:
        salt = generate_salt()
        reordered = dict(sorted(FIELDS.items()))
        assert compute_commitment(FIELDS, salt) == compute_commitment(reordered, salt)

    def test_differs_from_unsalted_hash(self) -> None:
        assert compute_commitment(FIELDS, "") != compute_certificate_hash(FIELDS)


def test_generate_salt_is_random_hex() -> None:
    first, second = generate_salt(), generate_salt()
    assert first != second
    assert len(first) == 64
    int(first, 16)
