"""
Ed25519 digital signing for certificate commitments.

Uses the ``cryptography`` library for Ed25519 key generation, signing, and
verification. Signatures bind an issuer key to a salted commitment.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)


def generate_signing_keypair() -> tuple[str, str]:
    """Generate a new Ed25519 key pair for binding proofs.

    Returns
    -------
    tuple[str, str]
        ``(private_key_pem, public_key_pem)`` as PEM-encoded strings.
    """
    private_key = Ed25519PrivateKey.generate()
    private_pem = private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("utf-8")
    return private_pem, _public_pem(private_key.public_key())


def _public_pem(public_key: Ed25519PublicKey) -> str:
    return public_key.public_bytes(
        encoding=Encoding.PEM,
        format=PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def _load_private_key(private_key_pem: str) -> Ed25519PrivateKey:
    private_key = load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
    if not isinstance(private_key, Ed25519PrivateKey):
        raise TypeError("Expected an Ed25519 private key")
    return private_key


def public_key_from_private(private_key_pem: str) -> str:
    """Derive the PEM public key matching an Ed25519 private key."""
    return _public_pem(_load_private_key(private_key_pem).public_key())


def sign_commitment(commitment: str, private_key_pem: str) -> str:
    """Sign a hex commitment with an Ed25519 private key.

    Returns
    -------
    str
        Base64-encoded Ed25519 signature.
    """
    signature = _load_private_key(private_key_pem).sign(commitment.encode("utf-8"))
    return base64.b64encode(signature).decode("utf-8")


def verify_commitment_signature(commitment: str, signature: str, public_key_pem: str) -> bool:
    """Verify an Ed25519 signature on a hex commitment.

    A malformed (non-base64) signature is reported as invalid.
    """
    public_key = load_pem_public_key(public_key_pem.encode("utf-8"))
    if not isinstance(public_key, Ed25519PublicKey):
        raise TypeError("Expected an Ed25519 public key")
    try:
        raw_signature = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    try:
        public_key.verify(raw_signature, commitment.encode("utf-8"))
        return True
    except InvalidSignature:
        return False
