"""Storage contract shared by the anchor log backends."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from certanchor.modules.anchor_log.schemas import AnchorEntry


class AnchorLog(Protocol):
    """Append-only store of anchor entries.

    Entries are never rewritten or deleted. Every method raises
    ``StorageError`` when the underlying storage is unavailable; that must
    not be read as "hash not anchored".
    """

    async def append(self, entry: AnchorEntry) -> None:
        """Durably append ``entry`` before returning."""

    async def exists(self, certificate_hash: str) -> bool:
        """Whether at least one entry for ``certificate_hash`` was appended."""

    async def find(self, certificate_hash: str) -> list[AnchorEntry]:
        """All entries for ``certificate_hash``, oldest first."""

    def list_all(self) -> AsyncIterator[AnchorEntry]:
        """Lazily iterate all entries; each call starts a fresh pass."""
