"""Certificate issuance: validate, anchor, then persist the record."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from certanchor.core.crypto.commitment import compute_certificate_hash
from certanchor.core.errors import DuplicateCertificateError
from certanchor.core.logging import get_logger
from certanchor.modules.anchoring.service import AnchoringService
from certanchor.modules.certificates.schemas import (
    IssueCertificateRequest,
    IssuedCertificate,
    NewCertificate,
)
from certanchor.modules.certificates.store import CertificateRecordStore

logger = get_logger(__name__)


def build_verification_url(public_base_url: str, certificate_hash: str) -> str:
    """URL a verifier opens (or scans from the QR code) to check a certificate."""
    return f"{public_base_url.rstrip('/')}/verify/{certificate_hash}"


class CertificateIssuanceService:
    """Issue certificates whose hash is anchored before the record is stored.

    The anchor is written first: a record without an anchor would never
    verify, while an anchor without a record is inert.
    """

    def __init__(
        self,
        store: CertificateRecordStore,
        anchoring: AnchoringService,
        *,
        public_base_url: str,
        required_fields: Sequence[str] = (),
    ) -> None:
        self._store = store
        self._anchoring = anchoring
        self._public_base_url = public_base_url
        self._required_fields = tuple(required_fields)

    async def issue(self, request: IssueCertificateRequest) -> IssuedCertificate:
        missing = [
            name for name in self._required_fields if not request.fields.get(name, "").strip()
        ]
        if missing:
            raise ValueError(f"Missing required certificate fields: {', '.join(missing)}")

        certificate_hash = compute_certificate_hash(request.fields)
        if await self._store.get_by_hash(certificate_hash) is not None:
            raise DuplicateCertificateError(f"Certificate {certificate_hash} already exists")

        receipt = await self._anchoring.anchor(request.fields)
        issue_date = request.issue_date or datetime.now(UTC).date()
        certificate_id = await self._store.insert(
            NewCertificate(
                student_ref=request.student_ref,
                issue_date=issue_date,
                fields=dict(request.fields),
                certificate_hash=receipt.certificate_hash,
                anchor_ref=receipt.anchor_ref,
            )
        )
        logger.info(
            "certificate_issued",
            certificate_id=str(certificate_id),
            certificate_hash=receipt.certificate_hash,
            ledger_backed=receipt.ledger_backed,
        )
        return IssuedCertificate(
            id=certificate_id,
            certificate_hash=receipt.certificate_hash,
            anchor_ref=receipt.anchor_ref,
            ledger_backed=receipt.ledger_backed,
            issue_date=issue_date,
            verification_url=build_verification_url(
                self._public_base_url, receipt.certificate_hash
            ),
        )
