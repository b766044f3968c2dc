"""
Wiring of the anchoring and verification services from settings.

The ledger client and binding-proof checker are built once and shared by
every service, so the whole process observes one connection state.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certanchor.core.config import Settings, get_settings
from certanchor.core.crypto.binding_proof import BindingProofChecker, create_binding_proof_checker
from certanchor.modules.anchor_log import AnchorLog, FileAnchorLog, SqlAnchorLog
from certanchor.modules.anchoring import AnchoringService
from certanchor.modules.certificates import CertificateIssuanceService, CertificateRecordStore
from certanchor.modules.ledger import LedgerClient, create_ledger_client
from certanchor.modules.verification import VerificationService


@dataclass(slots=True)
class CertificateServices:
    """Services sharing one ledger client, anchor log and record store."""

    settings: Settings
    store: CertificateRecordStore
    anchor_log: AnchorLog
    ledger: LedgerClient
    binding_proofs: BindingProofChecker
    anchoring: AnchoringService
    issuance: CertificateIssuanceService
    verification: VerificationService


def build_anchor_log(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> AnchorLog:
    if settings.anchor_log_backend == "database":
        return SqlAnchorLog(session_factory, batch_size=settings.anchor_log_batch_size)
    return FileAnchorLog(settings.anchor_log_path, batch_size=settings.anchor_log_batch_size)


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    settings: Settings | None = None,
    ledger: LedgerClient | None = None,
    anchor_log: AnchorLog | None = None,
    binding_proofs: BindingProofChecker | None = None,
) -> CertificateServices:
    """Assemble the services; explicit collaborators override the settings."""
    settings = settings or get_settings()
    ledger = ledger if ledger is not None else create_ledger_client(settings)
    anchor_log = anchor_log if anchor_log is not None else build_anchor_log(
        settings, session_factory
    )
    binding_proofs = binding_proofs or create_binding_proof_checker(settings)
    store = CertificateRecordStore(session_factory)

    anchoring = AnchoringService(anchor_log, ledger, binding_proofs=binding_proofs)
    return CertificateServices(
        settings=settings,
        store=store,
        anchor_log=anchor_log,
        ledger=ledger,
        binding_proofs=binding_proofs,
        anchoring=anchoring,
        issuance=CertificateIssuanceService(
            store,
            anchoring,
            public_base_url=settings.public_base_url,
            required_fields=settings.certificate_required_fields,
        ),
        verification=VerificationService(
            store, anchor_log, ledger, binding_proofs=binding_proofs
        ),
    )
