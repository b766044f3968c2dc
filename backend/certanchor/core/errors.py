"""
Error taxonomy for certificate anchoring and verification.

Negative verification outcomes (unknown hash, tampered record, missing
anchor) are reported on ``VerificationResult`` and are not exceptions.
"""


class CertificateAnchoringError(RuntimeError):
    """Base class for anchoring and verification failures."""


class LedgerUnavailableError(CertificateAnchoringError):
    """Raised when the external ledger cannot be used for the current call."""


class StorageError(CertificateAnchoringError):
    """Raised when the anchor log or the certificate record store fails."""


class VerificationUnavailableError(CertificateAnchoringError):
    """Raised when no anchor source could be consulted.

    Distinct from a negative verdict: the certificate may be genuine,
    it simply could not be checked.
    """


class DuplicateCertificateError(CertificateAnchoringError):
    """Raised when a certificate with the same hash already exists."""
