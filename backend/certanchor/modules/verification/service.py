"""
Verification service.

A verdict is built from three independent checks: the stored record must
re-hash to the requested hash, an anchor for the hash must exist on the
ledger or in the anchor log, and (when enabled) a recorded binding proof must
not be invalid. When no anchor source can be consulted the call fails with
``VerificationUnavailableError`` instead of guessing.
"""

from __future__ import annotations

from datetime import UTC, datetime

from certanchor.core.crypto.binding_proof import (
    BindingProofChecker,
    BindingProofStatus,
    DisabledBindingProofChecker,
)
from certanchor.core.crypto.commitment import compute_certificate_hash
from certanchor.core.errors import (
    LedgerUnavailableError,
    StorageError,
    VerificationUnavailableError,
)
from certanchor.core.logging import get_logger
from certanchor.modules.anchor_log.base import AnchorLog
from certanchor.modules.certificates.schemas import CertificateRecord
from certanchor.modules.certificates.store import CertificateRecordStore
from certanchor.modules.ledger.client import ConnectionState, LedgerClient
from certanchor.modules.verification.qr import (
    extract_certificate_hash,
    normalize_certificate_hash,
)
from certanchor.modules.verification.schemas import (
    AnchorSource,
    VerificationReason,
    VerificationResult,
)

logger = get_logger(__name__)


class VerificationService:
    """Answer "is this certificate authentic and unaltered?" for a hash."""

    def __init__(
        self,
        store: CertificateRecordStore,
        anchor_log: AnchorLog,
        ledger: LedgerClient,
        *,
        binding_proofs: BindingProofChecker | None = None,
    ) -> None:
        self._store = store
        self._anchor_log = anchor_log
        self._ledger = ledger
        self._binding_proofs = binding_proofs or DisabledBindingProofChecker()

    async def verify_qr_payload(self, payload: str) -> VerificationResult:
        """Verify the certificate referenced by a scanned QR payload."""
        return await self.verify(extract_certificate_hash(payload))

    async def verify(self, certificate_hash: str) -> VerificationResult:
        """Verify ``certificate_hash`` and record the attempt.

        Raises
        ------
        VerificationUnavailableError
            The record store could not be read, or neither the ledger nor the
            anchor log could be consulted.
        """
        certificate_hash = normalize_certificate_hash(certificate_hash)
        checked_at = datetime.now(UTC)

        try:
            record = await self._store.get_by_hash(certificate_hash)
        except StorageError as exc:
            raise VerificationUnavailableError(
                f"Certificate store unavailable while verifying {certificate_hash}"
            ) from exc

        if record is None:
            logger.info("verification_not_found", certificate_hash=certificate_hash)
            return VerificationResult(
                is_valid=False,
                reason=VerificationReason.NOT_FOUND,
                certificate_hash=certificate_hash,
                checked_at=checked_at,
            )

        try:
            expected_hash: str | None = compute_certificate_hash(record.fields)
        except TypeError:
            # Non-string values can never match an issued hash
            expected_hash = None
        if expected_hash != certificate_hash:
            logger.warning(
                "certificate_hash_mismatch",
                certificate_id=str(record.id),
                certificate_hash=certificate_hash,
                recomputed_hash=expected_hash,
            )
            result = VerificationResult(
                is_valid=False,
                reason=VerificationReason.HASH_MISMATCH,
                certificate_hash=certificate_hash,
                certificate=record,
                checked_at=checked_at,
            )
            await self._record_attempt(record, result)
            return result

        anchor_source = await self._find_anchor(certificate_hash)
        if anchor_source is None:
            result = VerificationResult(
                is_valid=False,
                reason=VerificationReason.NOT_ANCHORED,
                certificate_hash=certificate_hash,
                certificate=record,
                checked_at=checked_at,
            )
        else:
            binding_proof = await self._check_binding_proof(record)
            proof_ok = binding_proof is not BindingProofStatus.INVALID
            result = VerificationResult(
                is_valid=proof_ok,
                reason=(
                    VerificationReason.VALID
                    if proof_ok
                    else VerificationReason.BINDING_PROOF_INVALID
                ),
                certificate_hash=certificate_hash,
                certificate=record,
                anchor_source=anchor_source,
                binding_proof=binding_proof,
                checked_at=checked_at,
            )

        logger.info(
            "certificate_verified",
            certificate_hash=certificate_hash,
            is_valid=result.is_valid,
            reason=result.reason.value,
            anchor_source=anchor_source.value if anchor_source else None,
        )
        await self._record_attempt(record, result)
        return result

    async def _find_anchor(self, certificate_hash: str) -> AnchorSource | None:
        # A ledger miss still consults the log: degraded issuances live only there
        if await self._ledger.connect() is ConnectionState.CONNECTED:
            try:
                if await self._ledger.check(certificate_hash):
                    return AnchorSource.LEDGER
            except LedgerUnavailableError as exc:
                logger.warning(
                    "ledger_check_failed",
                    certificate_hash=certificate_hash,
                    error=str(exc),
                )

        try:
            present = await self._anchor_log.exists(certificate_hash)
        except StorageError as exc:
            logger.error(
                "verification_unavailable",
                certificate_hash=certificate_hash,
                ledger_state=self._ledger.state.value,
                error=str(exc),
            )
            raise VerificationUnavailableError(
                f"No anchor source available to verify {certificate_hash}"
            ) from exc
        return AnchorSource.ANCHOR_LOG if present else None

    async def _check_binding_proof(self, record: CertificateRecord) -> BindingProofStatus:
        if not self._binding_proofs.enabled:
            return BindingProofStatus.DISABLED
        try:
            entries = await self._anchor_log.find(record.certificate_hash)
        except StorageError as exc:
            logger.warning(
                "binding_proof_lookup_failed",
                certificate_hash=record.certificate_hash,
                error=str(exc),
            )
            return BindingProofStatus.UNAVAILABLE

        proven = [entry for entry in entries if entry.proof and entry.salt]
        if not proven:
            return BindingProofStatus.ABSENT
        for entry in proven:
            status = self._binding_proofs.check(record.fields, str(entry.salt), entry.proof or {})
            if status is BindingProofStatus.VERIFIED:
                return status
        logger.warning("binding_proof_invalid", certificate_hash=record.certificate_hash)
        return BindingProofStatus.INVALID

    async def _record_attempt(self, record: CertificateRecord, result: VerificationResult) -> None:
        try:
            await self._store.record_verification(
                record.id,
                is_valid=result.is_valid,
                verified_at=result.checked_at,
            )
        except StorageError as exc:
            logger.warning(
                "verification_audit_write_failed",
                certificate_id=str(record.id),
                certificate_hash=result.certificate_hash,
                error=str(exc),
            )
