"""
Deterministic commitments over certificate fields.

The certificate hash is ``SHA256(JCS(fields))``. RFC 8785 sorts object keys,
so two mappings holding the same name/value pairs always hash identically no
matter in which order the pairs were inserted or stored (PostgreSQL ``JSONB``
for instance does not keep key order).

The salted commitment ``SHA256(JCS({"fields": fields, "salt": salt}))`` is
what the optional binding-proof layer signs.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping

from certanchor.core.crypto.canonicalization import sha256_hex_jcs

SALT_BYTES = 32


def _plain_fields(fields: Mapping[str, str]) -> dict[str, str]:
    plain: dict[str, str] = {}
    for name, value in fields.items():
        if not isinstance(name, str):
            raise TypeError(f"Certificate field names must be strings, got {type(name).__name__}")
        if not isinstance(value, str):
            raise TypeError(
                f"Certificate field {name!r} must be a string, got {type(value).__name__}"
            )
        plain[name] = value
    return plain


def compute_certificate_hash(fields: Mapping[str, str]) -> str:
    """Compute the content hash of a certificate.

    Parameters
    ----------
    fields:
        Mapping of attribute name to string value.

    Returns
    -------
    str
        Hex-encoded SHA-256 digest (64 characters).
    """
    return sha256_hex_jcs(_plain_fields(fields))


def compute_commitment(fields: Mapping[str, str], salt: str) -> str:
    """Compute the salted commitment used for binding proofs."""
    return sha256_hex_jcs({"fields": _plain_fields(fields), "salt": salt})


def generate_salt() -> str:
    """Return a fresh random salt, hex encoded."""
    return secrets.token_hex(SALT_BYTES)
