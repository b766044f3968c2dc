"""
JSON-lines anchor log.

Each entry is one line written with a single ``O_APPEND`` write and flushed
with ``fsync`` before ``append`` returns. Concurrent writers therefore never
interleave inside a line and no read-modify-write of the file ever happens.
Readers ignore a trailing line that has not been terminated yet, and the next
append terminates such a torn line before writing its own entry.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from pathlib import Path

from pydantic import ValidationError

from certanchor.core.errors import StorageError
from certanchor.core.logging import get_logger
from certanchor.modules.anchor_log.schemas import AnchorEntry

logger = get_logger(__name__)


class FileAnchorLog:
    """Anchor log stored in a local append-only JSON-lines file."""

    def __init__(self, path: Path | str, *, batch_size: int = 500) -> None:
        self._path = Path(path)
        self._batch_size = max(1, batch_size)

    @property
    def path(self) -> Path:
        return self._path

    async def append(self, entry: AnchorEntry) -> None:
        line = (entry.model_dump_json(exclude={"ledger_backed"}) + "\n").encode("utf-8")
        try:
            await asyncio.to_thread(self._write_line, line)
        except OSError as exc:
            raise StorageError(f"Could not append to anchor log {self._path}: {exc}") from exc

    async def exists(self, certificate_hash: str) -> bool:
        entries = await self._scan(certificate_hash, first_only=True)
        return bool(entries)

    async def find(self, certificate_hash: str) -> list[AnchorEntry]:
        return await self._scan(certificate_hash, first_only=False)

    async def list_all(self) -> AsyncIterator[AnchorEntry]:
        offset = 0
        while True:
            try:
                entries, offset, at_end = await asyncio.to_thread(self._read_batch, offset)
            except OSError as exc:
                raise StorageError(f"Could not read anchor log {self._path}: {exc}") from exc
            for entry in entries:
                yield entry
            if at_end:
                return

    # ------------------------------------------------------------------
    # Blocking helpers (run in worker threads)
    # ------------------------------------------------------------------

    def _write_line(self, line: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_RDWR | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            size = os.fstat(fd).st_size
            if size and os.pread(fd, 1, size - 1) != b"\n":
                # Terminate a torn tail so this entry starts on its own line
                line = b"\n" + line
            written = os.write(fd, line)
            if written != len(line):
                raise OSError(f"short write ({written} of {len(line)} bytes)")
            os.fsync(fd)
        finally:
            os.close(fd)

    async def _scan(self, certificate_hash: str, *, first_only: bool) -> list[AnchorEntry]:
        try:
            return await asyncio.to_thread(self._scan_file, certificate_hash, first_only)
        except OSError as exc:
            raise StorageError(f"Could not read anchor log {self._path}: {exc}") from exc

    def _scan_file(self, certificate_hash: str, first_only: bool) -> list[AnchorEntry]:
        if not self._path.exists():
            return []
        matches: list[AnchorEntry] = []
        needle = certificate_hash.encode("utf-8")
        with self._path.open("rb") as handle:
            for line_no, raw in enumerate(handle, start=1):
                if not raw.endswith(b"\n") or needle not in raw:
                    continue
                entry = self._parse_line(raw, line_no)
                if entry is not None and entry.hash == certificate_hash:
                    matches.append(entry)
                    if first_only:
                        break
        return matches

    def _read_batch(self, offset: int) -> tuple[list[AnchorEntry], int, bool]:
        if not self._path.exists():
            return [], offset, True
        entries: list[AnchorEntry] = []
        with self._path.open("rb") as handle:
            handle.seek(offset)
            lines_read = 0
            while lines_read < self._batch_size:
                raw = handle.readline()
                if not raw or not raw.endswith(b"\n"):
                    return entries, offset, True
                offset += len(raw)
                lines_read += 1
                entry = self._parse_line(raw, None)
                if entry is not None:
                    entries.append(entry)
        return entries, offset, False

    def _parse_line(self, raw: bytes, line_no: int | None) -> AnchorEntry | None:
        text = raw.strip()
        if not text:
            return None
        try:
            return AnchorEntry.model_validate_json(text)
        except ValidationError:
            logger.warning("anchor_log_line_skipped", path=str(self._path), line=line_no)
            return None
