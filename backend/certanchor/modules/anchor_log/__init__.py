"""Append-only anchor log (file and database backends)."""

from certanchor.modules.anchor_log.base import AnchorLog
from certanchor.modules.anchor_log.file_log import FileAnchorLog
from certanchor.modules.anchor_log.schemas import (
    LOCAL_ANCHOR_PREFIX,
    AnchorEntry,
    is_local_anchor_ref,
    synthesize_local_anchor_ref,
)
from certanchor.modules.anchor_log.sql_log import SqlAnchorLog

__all__ = [
    "AnchorEntry",
    "AnchorLog",
    "FileAnchorLog",
    "LOCAL_ANCHOR_PREFIX",
    "SqlAnchorLog",
    "is_local_anchor_ref",
    "synthesize_local_anchor_ref",
]
