"""Extract a certificate hash from what a verifier typed or scanned."""

from __future__ import annotations

from urllib.parse import unquote, urlsplit


def extract_certificate_hash(payload: str) -> str:
    """Return the certificate hash carried by a QR payload.

    Accepts a bare hash, a ``verify/{hash}`` path or a full verification
    URL; the hash is the last path segment. Query strings and fragments are
    ignored.
    """
    value = payload.strip()
    if not value:
        raise ValueError("QR payload is empty")
    path = urlsplit(value).path if "://" in value else value.split("?", 1)[0].split("#", 1)[0]
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        raise ValueError(f"No certificate hash found in QR payload {payload!r}")
    return normalize_certificate_hash(unquote(segments[-1]))


def normalize_certificate_hash(certificate_hash: str) -> str:
    return certificate_hash.strip().lower()
