"""
SQLAlchemy ORM models for certificate records, verification audit
and the database-backed anchor log.
"""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON().with_variant(JSONB(), "postgresql"),
    }


class Certificate(Base):
    """
    Issued certificate.

    ``certificate_hash`` is derived from ``fields`` and is never rewritten;
    changing a field means issuing a new certificate.
    """

    __tablename__ = "certificates"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    student_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    fields: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    certificate_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="SHA-256 of the canonical certificate fields",
    )
    anchor_ref: Mapped[str | None] = mapped_column(
        String(128),
        comment="Ledger transaction hash or local anchor reference",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
    )

    verifications: Mapped[list["VerificationRecord"]] = relationship(
        back_populates="certificate",
    )


class VerificationRecord(Base):
    """
    Audit trail of verification attempts.

    One row per attempt, regardless of outcome. Rows are never updated.
    """

    __tablename__ = "verification_records"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    certificate_id: Mapped[UUID] = mapped_column(
        ForeignKey("certificates.id", ondelete="RESTRICT"),
        nullable=False,
    )
    verified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
    )
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False)

    certificate: Mapped[Certificate] = relationship(back_populates="verifications")

    __table_args__ = (
        Index("ix_verification_records_certificate", "certificate_id"),
        Index("ix_verification_records_verified_at", "verified_at"),
    )


class AnchorEntryRecord(Base):
    """
    Append-only anchor log entry (database backend).

    ``certificate_hash`` is intentionally not unique: repeated anchoring of
    the same certificate appends another row.
    """

    __tablename__ = "anchor_entries"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    certificate_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    anchor_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    anchored_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    proof: Mapped[dict[str, Any] | None] = mapped_column()
    salt: Mapped[str | None] = mapped_column(String(128))

    __table_args__ = (Index("ix_anchor_entries_certificate_hash", "certificate_hash"),)
