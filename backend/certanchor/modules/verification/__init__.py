"""Verification of certificates by hash or QR payload."""

from certanchor.modules.verification.qr import extract_certificate_hash
from certanchor.modules.verification.schemas import (
    AnchorSource,
    VerificationReason,
    VerificationResult,
)
from certanchor.modules.verification.service import VerificationService

__all__ = [
    "AnchorSource",
    "VerificationReason",
    "VerificationResult",
    "VerificationService",
    "extract_certificate_hash",
]
