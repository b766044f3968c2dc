"""
Service layer for anchoring certificate hashes.

The ledger is attempted first; the anchor log is written in every case.
Losing the ledger write only weakens tamper-evidence, so ledger failures
degrade to a locally synthesized anchor reference. Losing the anchor log
write would leave no durable record, so that failure propagates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import Any

from certanchor.core.crypto.binding_proof import BindingProofChecker, DisabledBindingProofChecker
from certanchor.core.crypto.commitment import compute_certificate_hash, generate_salt
from certanchor.core.errors import LedgerUnavailableError
from certanchor.core.logging import get_logger
from certanchor.modules.anchor_log.base import AnchorLog
from certanchor.modules.anchor_log.schemas import AnchorEntry, synthesize_local_anchor_ref
from certanchor.modules.ledger.client import ConnectionState, LedgerClient

logger = get_logger(__name__)


def _report_abandoned_append(certificate_hash: str, append: asyncio.Future[None]) -> None:
    """Surface the outcome of an append whose caller was cancelled."""
    if append.cancelled():
        return
    exc = append.exception()
    if exc is not None:
        logger.error(
            "anchor_log_append_failed",
            certificate_hash=certificate_hash,
            error=str(exc),
            caller_cancelled=True,
        )


@dataclass(slots=True, frozen=True)
class AnchorReceipt:
    """What the caller needs to reference an anchor later."""

    certificate_hash: str
    anchor_ref: str
    ledger_backed: bool
    anchored_at: datetime
    salt: str | None = None
    proof: dict[str, Any] | None = None


class AnchoringService:
    """Compute a certificate's commitment and anchor it."""

    def __init__(
        self,
        anchor_log: AnchorLog,
        ledger: LedgerClient,
        *,
        binding_proofs: BindingProofChecker | None = None,
    ) -> None:
        self._anchor_log = anchor_log
        self._ledger = ledger
        self._binding_proofs = binding_proofs or DisabledBindingProofChecker()

    async def anchor(self, fields: Mapping[str, str]) -> AnchorReceipt:
        """Anchor ``fields`` and return the hash with its anchor reference.

        Raises
        ------
        StorageError
            The anchor log could not be written; nothing was recorded locally.
        """
        certificate_hash = compute_certificate_hash(fields)
        anchor_ref = await self._anchor_on_ledger(certificate_hash)
        anchored_at = datetime.now(UTC)

        ledger_backed = anchor_ref is not None
        if anchor_ref is None:
            anchor_ref = synthesize_local_anchor_ref(certificate_hash, anchored_at)

        salt: str | None = None
        proof: dict[str, Any] | None = None
        if self._binding_proofs.enabled:
            salt = generate_salt()
            proof = self._binding_proofs.issue(fields, salt)
            if proof is None:
                salt = None

        entry = AnchorEntry(
            hash=certificate_hash,
            anchor_ref=anchor_ref,
            timestamp=anchored_at,
            proof=proof,
            salt=salt,
        )
        # A started append always finishes, even if the caller is cancelled
        append = asyncio.ensure_future(self._anchor_log.append(entry))
        try:
            await asyncio.shield(append)
        except asyncio.CancelledError:
            append.add_done_callback(partial(_report_abandoned_append, certificate_hash))
            raise

        if ledger_backed:
            logger.info(
                "certificate_anchored",
                certificate_hash=certificate_hash,
                anchor_ref=anchor_ref,
                ledger_backed=True,
            )
        else:
            logger.warning(
                "certificate_anchored_locally",
                certificate_hash=certificate_hash,
                anchor_ref=anchor_ref,
                ledger_state=self._ledger.state.value,
            )

        return AnchorReceipt(
            certificate_hash=certificate_hash,
            anchor_ref=anchor_ref,
            ledger_backed=ledger_backed,
            anchored_at=anchored_at,
            salt=salt,
            proof=proof,
        )

    async def _anchor_on_ledger(self, certificate_hash: str) -> str | None:
        if await self._ledger.connect() is not ConnectionState.CONNECTED:
            return None
        try:
            return await self._ledger.anchor(certificate_hash)
        except LedgerUnavailableError as exc:
            logger.warning(
                "ledger_anchor_failed",
                certificate_hash=certificate_hash,
                error=str(exc),
            )
            return None
