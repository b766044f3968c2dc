"""Certificate record store and issuance."""

from certanchor.modules.certificates.issuance import (
    CertificateIssuanceService,
    build_verification_url,
)
from certanchor.modules.certificates.schemas import (
    CertificateRecord,
    CertificateStats,
    IssueCertificateRequest,
    IssuedCertificate,
    NewCertificate,
    VerificationEntry,
)
from certanchor.modules.certificates.store import CertificateRecordStore

__all__ = [
    "CertificateIssuanceService",
    "CertificateRecord",
    "CertificateRecordStore",
    "CertificateStats",
    "IssueCertificateRequest",
    "IssuedCertificate",
    "NewCertificate",
    "VerificationEntry",
    "build_verification_url",
]
