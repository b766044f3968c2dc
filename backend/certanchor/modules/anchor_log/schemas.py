"""
Pydantic schemas for anchor log entries.
"""

import hashlib
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

LOCAL_ANCHOR_PREFIX = "local:"


def synthesize_local_anchor_ref(certificate_hash: str, anchored_at: datetime) -> str:
    """Build a traceable anchor reference for an anchor with no ledger transaction.

    The ``local:`` prefix marks the reference as not ledger-backed.
    """
    digest = hashlib.sha256(f"{certificate_hash}{anchored_at.isoformat()}".encode()).hexdigest()
    return f"{LOCAL_ANCHOR_PREFIX}0x{digest}"


def is_local_anchor_ref(anchor_ref: str) -> bool:
    return anchor_ref.startswith(LOCAL_ANCHOR_PREFIX)


class AnchorEntry(BaseModel):
    """One append-only record asserting a certificate hash existed at a time."""

    model_config = ConfigDict(frozen=True)

    hash: str = Field(min_length=1, description="Certificate hash (hex SHA-256)")
    anchor_ref: str = Field(min_length=1, description="Ledger tx hash or local reference")
    timestamp: datetime
    proof: dict[str, Any] | None = Field(default=None, description="Binding proof payload")
    salt: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ledger_backed(self) -> bool:
        return not is_local_anchor_ref(self.anchor_ref)
