"""
Pytest fixtures for backend testing.
Provides a SQLite database, anchor logs and an in-memory ledger.
"""

import hashlib
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from certanchor.core.config import get_settings
from certanchor.core.errors import LedgerUnavailableError, StorageError
from certanchor.db.models import Base
from certanchor.db.session import create_session_factory
from certanchor.modules.anchor_log import AnchorEntry, FileAnchorLog
from certanchor.modules.certificates import CertificateRecordStore
from certanchor.modules.ledger import ConnectionState

ADA_FIELDS = {
    "studentName": "Ada Lovelace",
    "degree": "BSc CS",
    "registrationNumber": "CS-042",
}


class FakeLedgerClient:
    """In-memory ledger implementing the ledger client contract."""

    def __init__(self, *, reachable: bool = True) -> None:
        self.reachable = reachable
        self.fail_anchor = False
        self.fail_check = False
        self.anchored: dict[str, str] = {}
        self.connect_calls = 0
        self._state = ConnectionState.UNINITIALIZED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    async def connect(self) -> ConnectionState:
        self.connect_calls += 1
        if self._state is ConnectionState.UNINITIALIZED:
            self._state = (
                ConnectionState.CONNECTED if self.reachable else ConnectionState.DEGRADED
            )
        return self._state

    async def anchor(self, certificate_hash: str) -> str:
        if not self.is_connected or self.fail_anchor:
            self._state = ConnectionState.DEGRADED
            raise LedgerUnavailableError("fake ledger cannot anchor")
        tx_hash = "0x" + hashlib.sha256(certificate_hash.encode()).hexdigest()
        self.anchored[certificate_hash] = tx_hash
        return tx_hash

    async def check(self, certificate_hash: str) -> bool:
        if not self.is_connected or self.fail_check:
            self._state = ConnectionState.DEGRADED
            raise LedgerUnavailableError("fake ledger cannot check")
        return certificate_hash in self.anchored

    async def get_transaction(self, anchor_ref: str) -> dict[str, Any] | None:
        if not self.is_connected:
            raise LedgerUnavailableError("fake ledger is degraded")
        for certificate_hash, tx_hash in self.anchored.items():
            if tx_hash == anchor_ref:
                return {"tx_hash": tx_hash, "certificate_hash": certificate_hash}
        return None

    def degrade(self) -> None:
        self._state = ConnectionState.DEGRADED

    def reset(self) -> None:
        self._state = ConnectionState.UNINITIALIZED


class BrokenAnchorLog:
    """Anchor log whose storage is unavailable."""

    def __init__(self) -> None:
        self.append_calls = 0

    async def append(self, entry: AnchorEntry) -> None:
        self.append_calls += 1
        raise StorageError("anchor log storage is unavailable")

    async def exists(self, certificate_hash: str) -> bool:
        raise StorageError("anchor log storage is unavailable")

    async def find(self, certificate_hash: str) -> list[AnchorEntry]:
        raise StorageError("anchor log storage is unavailable")

    async def list_all(self):  # type: ignore[no-untyped-def]
        raise StorageError("anchor log storage is unavailable")
        yield  # pragma: no cover


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """SQLite database with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'certanchor.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def failing_session_factory() -> MagicMock:
    """Session factory whose sessions fail as soon as they are opened."""
    session = MagicMock()
    session.__aenter__ = AsyncMock(
        side_effect=OperationalError("SELECT 1", {}, Exception("database is unavailable"))
    )
    session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> CertificateRecordStore:
    return CertificateRecordStore(session_factory)


@pytest.fixture
def anchor_log(tmp_path: Path) -> FileAnchorLog:
    return FileAnchorLog(tmp_path / "anchors" / "anchor_log.jsonl", batch_size=2)


@pytest.fixture
def broken_anchor_log() -> BrokenAnchorLog:
    return BrokenAnchorLog()


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def degraded_ledger() -> FakeLedgerClient:
    return FakeLedgerClient(reachable=False)


@pytest.fixture
def ada_fields() -> dict[str, str]:
    return dict(ADA_FIELDS)
