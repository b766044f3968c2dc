"""Canonicalization helpers for stable cross-platform hashing/signing."""

from __future__ import annotations

import hashlib
from typing import Any

import rfc8785

CANONICALIZATION_RFC8785 = "rfc8785"
SHA256_ALGORITHM = "sha-256"


def canonicalize_jcs_bytes(data: Any) -> bytes:
    """Return RFC 8785 (JCS) canonical bytes."""
    canonical = rfc8785.dumps(data)
    if isinstance(canonical, bytes):
        return canonical
    return str(canonical).encode("utf-8")


def sha256_hex_jcs(data: Any) -> str:
    """Compute SHA-256 hex digest over RFC 8785 canonical bytes."""
    return hashlib.sha256(canonicalize_jcs_bytes(data)).hexdigest()
