"""Administrative command line for issuing, verifying and inspecting anchors."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy.engine import make_url

from certanchor import __version__
from certanchor.bootstrap import CertificateServices, build_services
from certanchor.core.config import get_settings
from certanchor.core.crypto.signing import generate_signing_keypair
from certanchor.core.errors import (
    CertificateAnchoringError,
    LedgerUnavailableError,
    VerificationUnavailableError,
)
from certanchor.core.logging import configure_logging, get_logger
from certanchor.db.session import close_db, create_schema, init_db
from certanchor.modules.certificates import IssueCertificateRequest
from certanchor.modules.verification.qr import normalize_certificate_hash

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2


def _parse_field(value: str) -> tuple[str, str]:
    name, sep, field_value = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {value!r}")
    return name.strip(), field_value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certanchor",
        description="Issue and verify anchored academic certificates.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database tables.")

    issue = commands.add_parser("issue", help="Issue and anchor a certificate.")
    issue.add_argument("--student-ref", required=True, help="Reference of the student.")
    issue.add_argument(
        "--field",
        dest="fields",
        action="append",
        type=_parse_field,
        required=True,
        metavar="NAME=VALUE",
        help="Certificate attribute; repeat for each field.",
    )
    issue.add_argument("--issue-date", help="ISO date; defaults to today (UTC).")

    verify = commands.add_parser("verify", help="Verify a certificate hash or QR payload.")
    verify.add_argument("payload", help="Certificate hash, verify/{hash} path or URL.")

    anchors = commands.add_parser("anchors", help="List anchor log entries.")
    anchors.add_argument("--limit", type=int, default=100)

    tx = commands.add_parser("tx", help="Show the ledger transaction behind an anchor.")
    tx.add_argument("anchor_ref")

    history = commands.add_parser("history", help="Show recent verification attempts.")
    history.add_argument("--limit", type=int, default=50)

    stats = commands.add_parser("stats", help="Show issuance and verification counters.")
    stats.add_argument(
        "--hash",
        dest="certificate_hash",
        help="Only count the verifications of this certificate.",
    )
    commands.add_parser("ledger-status", help="Probe the ledger and report its state.")
    commands.add_parser("keygen", help="Generate an Ed25519 binding-proof key pair.")
    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def _issue(services: CertificateServices, args: argparse.Namespace) -> int:
    request = IssueCertificateRequest(
        student_ref=args.student_ref,
        fields=dict(args.fields),
        issue_date=args.issue_date,
    )
    issued = await services.issuance.issue(request)
    _emit(issued.model_dump(mode="json"))
    return EXIT_OK


async def _verify(services: CertificateServices, args: argparse.Namespace) -> int:
    try:
        result = await services.verification.verify_qr_payload(args.payload)
    except VerificationUnavailableError as exc:
        _emit({"is_valid": None, "error": "verification_unavailable", "detail": str(exc)})
        return EXIT_UNAVAILABLE
    _emit({"is_valid": result.is_valid, **result.details})
    return EXIT_OK if result.is_valid else EXIT_FAILED


async def _anchors(services: CertificateServices, args: argparse.Namespace) -> int:
    entries: list[dict[str, Any]] = []
    async for entry in services.anchor_log.list_all():
        if len(entries) >= args.limit:
            break
        entries.append(entry.model_dump(mode="json"))
    _emit({"count": len(entries), "entries": entries})
    return EXIT_OK


async def _tx(services: CertificateServices, args: argparse.Namespace) -> int:
    await services.ledger.connect()
    try:
        details = await services.ledger.get_transaction(args.anchor_ref)
    except LedgerUnavailableError as exc:
        _emit({"anchor_ref": args.anchor_ref, "error": "ledger_unavailable", "detail": str(exc)})
        return EXIT_UNAVAILABLE
    if details is None:
        _emit({"anchor_ref": args.anchor_ref, "error": "transaction_not_found"})
        return EXIT_FAILED
    _emit(details)
    return EXIT_OK


async def _history(services: CertificateServices, args: argparse.Namespace) -> int:
    records = await services.store.list_verifications(limit=args.limit)
    _emit(
        [
            {
                "id": record.id,
                "certificate_id": str(record.certificate_id),
                "certificate_hash": record.certificate_hash,
                "verified_at": record.verified_at.isoformat(),
                "is_valid": record.is_valid,
            }
            for record in records
        ]
    )
    return EXIT_OK


async def _stats(services: CertificateServices, args: argparse.Namespace) -> int:
    if args.certificate_hash:
        certificate_hash = normalize_certificate_hash(args.certificate_hash)
        record = await services.store.get_by_hash(certificate_hash)
        if record is None:
            _emit({"certificate_hash": certificate_hash, "error": "certificate_not_found"})
            return EXIT_FAILED
        _emit(
            {
                "certificate_hash": certificate_hash,
                "certificate_id": str(record.id),
                "verifications": await services.store.count_verifications(record.id),
            }
        )
        return EXIT_OK

    stats = await services.store.stats()
    _emit(
        {
            "certificates": stats.certificates,
            "verifications": stats.verifications,
            "valid_verifications": stats.valid_verifications,
            "invalid_verifications": stats.invalid_verifications,
        }
    )
    return EXIT_OK


async def _ledger_status(services: CertificateServices, args: argparse.Namespace) -> int:
    state = await services.ledger.connect()
    _emit(
        {
            "state": state.value,
            "ledger_enabled": services.settings.ledger_enabled,
            "ledger_configured": services.settings.ledger_configured,
            "binding_proofs_enabled": services.binding_proofs.enabled,
        }
    )
    return EXIT_OK if services.ledger.is_connected else EXIT_FAILED


_HANDLERS = {
    "issue": _issue,
    "verify": _verify,
    "anchors": _anchors,
    "tx": _tx,
    "history": _history,
    "stats": _stats,
    "ledger-status": _ledger_status,
}


async def _main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "keygen":
        private_pem, public_pem = generate_signing_keypair()
        _emit({"private_key_pem": private_pem, "public_key_pem": public_pem})
        return EXIT_OK

    session_factory = await init_db(settings)
    try:
        if args.command == "init-db":
            await create_schema()
            database = make_url(settings.database_url).render_as_string(hide_password=True)
            _emit({"initialized": True, "database": database})
            return EXIT_OK
        services = build_services(session_factory, settings=settings)
        try:
            return await _HANDLERS[args.command](services, args)
        except (CertificateAnchoringError, ValueError) as exc:
            logger.error("command_failed", command=args.command, error=str(exc))
            _emit({"error": type(exc).__name__, "detail": str(exc)})
            return EXIT_FAILED
        finally:
            close = getattr(services.ledger, "close", None)
            if close is not None:
                await close()
    finally:
        await close_db()


def main(argv: Sequence[str] | None = None) -> int:
    return asyncio.run(_main(argv))
