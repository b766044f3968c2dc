"""
Database-backed anchor log.

Each append is an INSERT committed in its own short-lived session, so a
failing anchor write never shares a transaction with certificate records.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime

from sqlalchemy import exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certanchor.core.errors import StorageError
from certanchor.db.models import AnchorEntryRecord
from certanchor.modules.anchor_log.schemas import AnchorEntry


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_entry(row: AnchorEntryRecord) -> AnchorEntry:
    return AnchorEntry(
        hash=row.certificate_hash,
        anchor_ref=row.anchor_ref,
        timestamp=_as_utc(row.anchored_at),
        proof=row.proof,
        salt=row.salt,
    )


class SqlAnchorLog:
    """Anchor log stored in the ``anchor_entries`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        batch_size: int = 500,
    ) -> None:
        self._session_factory = session_factory
        self._batch_size = max(1, batch_size)

    async def append(self, entry: AnchorEntry) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    AnchorEntryRecord(
                        certificate_hash=entry.hash,
                        anchor_ref=entry.anchor_ref,
                        anchored_at=entry.timestamp,
                        proof=entry.proof,
                        salt=entry.salt,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not append anchor entry: {exc}") from exc

    async def exists(self, certificate_hash: str) -> bool:
        query = select(
            exists().where(AnchorEntryRecord.certificate_hash == certificate_hash)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return bool(result.scalar())
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not query anchor log: {exc}") from exc

    async def find(self, certificate_hash: str) -> list[AnchorEntry]:
        query = (
            select(AnchorEntryRecord)
            .where(AnchorEntryRecord.certificate_hash == certificate_hash)
            .order_by(AnchorEntryRecord.id.asc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [_to_entry(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not query anchor log: {exc}") from exc

    async def list_all(self) -> AsyncIterator[AnchorEntry]:
        last_id = 0
        while True:
            batch = await self._load_batch(after_id=last_id)
            for row_id, entry in batch:
                last_id = row_id
                yield entry
            if len(batch) < self._batch_size:
                return

    async def _load_batch(self, *, after_id: int) -> list[tuple[int, AnchorEntry]]:
        query = (
            select(AnchorEntryRecord)
            .where(AnchorEntryRecord.id > after_id)
            .order_by(AnchorEntryRecord.id.asc())
            .limit(self._batch_size)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [(row.id, _to_entry(row)) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read anchor log: {exc}") from exc
