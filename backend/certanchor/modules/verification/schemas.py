"""
Verification outcomes.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from certanchor.core.crypto.binding_proof import BindingProofStatus
from certanchor.modules.certificates.schemas import CertificateRecord


class VerificationReason(str, Enum):
    """Why a verification produced its verdict."""

    VALID = "valid"
    NOT_FOUND = "not_found"
    HASH_MISMATCH = "hash_mismatch"
    NOT_ANCHORED = "not_anchored"
    BINDING_PROOF_INVALID = "binding_proof_invalid"


class AnchorSource(str, Enum):
    """Which store confirmed the anchor."""

    LEDGER = "ledger"
    ANCHOR_LOG = "anchor_log"


@dataclass(slots=True)
class VerificationResult:
    """Verdict of one verification attempt.

    Attributes
    ----------
    is_valid:
        ``True`` only when the stored data re-hashes to the requested hash
        and an anchor for it was found.
    reason:
        ``VALID`` or the first check that failed.
    certificate:
        The stored record, when one exists for the hash.
    anchor_source:
        The store that confirmed the anchor, or ``None``.
    binding_proof:
        Outcome of the binding-proof check, or ``None`` if it was not reached.
    """

    is_valid: bool
    reason: VerificationReason
    certificate_hash: str
    certificate: CertificateRecord | None = None
    anchor_source: AnchorSource | None = None
    binding_proof: BindingProofStatus | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def details(self) -> dict[str, Any]:
        return {
            "certificate_hash": self.certificate_hash,
            "reason": self.reason.value,
            "anchor_source": self.anchor_source.value if self.anchor_source else None,
            "binding_proof": self.binding_proof.value if self.binding_proof else None,
            "checked_at": self.checked_at.isoformat(),
            "certificate": self.certificate.as_dict() if self.certificate else None,
        }
