"""
Schemas for certificate issuance and the certificate record store.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class IssueCertificateRequest(BaseModel):
    """Input for issuing one certificate."""

    student_ref: str = Field(min_length=1, max_length=255)
    fields: dict[str, str] = Field(
        min_length=1,
        description="Certificate attributes, e.g. department, registrationNumber, finalScore",
    )
    issue_date: date | None = Field(
        default=None,
        description="Defaults to the current UTC date",
    )

    @field_validator("fields")
    @classmethod
    def _field_names_not_blank(cls, value: dict[str, str]) -> dict[str, str]:
        for name in value:
            if not name.strip():
                raise ValueError("certificate field names must not be blank")
        return value


class IssuedCertificate(BaseModel):
    """Result of a successful issuance."""

    id: UUID
    certificate_hash: str
    anchor_ref: str
    ledger_backed: bool
    issue_date: date
    verification_url: str = Field(description="URL encoded in the certificate QR code")


@dataclass(slots=True, frozen=True)
class NewCertificate:
    student_ref: str
    issue_date: date
    fields: dict[str, str]
    certificate_hash: str
    anchor_ref: str | None


@dataclass(slots=True, frozen=True)
class CertificateRecord:
    """Certificate as stored in the record store.

    ``fields`` holds the stored values untouched, so a value whose type was
    changed in the database no longer re-hashes to the issued hash.
    """

    id: UUID
    student_ref: str
    issue_date: date
    fields: dict[str, Any]
    certificate_hash: str
    anchor_ref: str | None
    created_at: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "student_ref": self.student_ref,
            "issue_date": self.issue_date.isoformat(),
            "fields": dict(self.fields),
            "certificate_hash": self.certificate_hash,
            "anchor_ref": self.anchor_ref,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class VerificationEntry:
    """One row of the verification audit trail."""

    id: int
    certificate_id: UUID
    certificate_hash: str
    verified_at: datetime
    is_valid: bool


@dataclass(slots=True, frozen=True)
class CertificateStats:
    certificates: int
    verifications: int
    valid_verifications: int
    invalid_verifications: int
