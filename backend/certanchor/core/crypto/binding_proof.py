"""
Optional binding proofs for anchored certificates.

A binding proof is an issuer signature over the salted commitment of the
certificate fields. It is a pluggable capability: when no key material is
configured the ``DisabledBindingProofChecker`` is used, and its results are
reported as ``DISABLED``; they never count as a successful cryptographic check.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol

from certanchor.core.config import Settings
from certanchor.core.crypto.canonicalization import CANONICALIZATION_RFC8785, SHA256_ALGORITHM
from certanchor.core.crypto.commitment import compute_commitment
from certanchor.core.crypto.signing import (
    public_key_from_private,
    sign_commitment,
    verify_commitment_signature,
)
from certanchor.core.logging import get_logger

logger = get_logger(__name__)

BINDING_PROOF_SCHEME = "ed25519-commitment-v1"


class BindingProofStatus(str, Enum):
    """Outcome of checking the binding proofs recorded for a certificate."""

    VERIFIED = "verified"
    INVALID = "invalid"
    ABSENT = "absent"
    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"


class BindingProofChecker(Protocol):
    """Capability that issues and checks binding proofs."""

    @property
    def enabled(self) -> bool:
        """Whether this checker performs real cryptographic checks."""

    def issue(self, fields: Mapping[str, str], salt: str) -> dict[str, Any] | None:
        """Create a proof payload for ``fields`` under ``salt``."""

    def check(
        self,
        fields: Mapping[str, str],
        salt: str,
        proof: Mapping[str, Any],
    ) -> BindingProofStatus:
        """Check a stored proof payload against ``fields`` and ``salt``."""


class DisabledBindingProofChecker:
    """No-op checker used when no binding-proof key is configured.

    This is explicitly non-cryptographic: ``check`` answers ``DISABLED``.
    """

    @property
    def enabled(self) -> bool:
        return False

    def issue(self, fields: Mapping[str, str], salt: str) -> dict[str, Any] | None:
        return None

    def check(
        self,
        fields: Mapping[str, str],
        salt: str,
        proof: Mapping[str, Any],
    ) -> BindingProofStatus:
        return BindingProofStatus.DISABLED


class Ed25519BindingProofChecker:
    """Binding proofs backed by Ed25519 signatures over salted commitments.

    Parameters
    ----------
    public_key_pem:
        Key used to check proofs. Derived from ``private_key_pem`` when omitted.
    private_key_pem:
        Issuer key. Without it the checker can only check proofs, not issue them.
    key_id:
        Identifier recorded in every issued proof to support key rotation.
    """

    def __init__(
        self,
        *,
        public_key_pem: str | None = None,
        private_key_pem: str | None = None,
        key_id: str = "certanchor-binding-1",
    ) -> None:
        if not public_key_pem and not private_key_pem:
            raise ValueError("An Ed25519 public or private key is required")
        self._private_key_pem = private_key_pem or None
        self._public_key_pem = public_key_pem or public_key_from_private(str(private_key_pem))
        self._key_id = key_id

    @property
    def enabled(self) -> bool:
        return True

    @property
    def can_issue(self) -> bool:
        return self._private_key_pem is not None

    def issue(self, fields: Mapping[str, str], salt: str) -> dict[str, Any] | None:
        if self._private_key_pem is None:
            logger.warning("binding_proof_issue_skipped", reason="no signing key configured")
            return None
        commitment = compute_commitment(fields, salt)
        return {
            "scheme": BINDING_PROOF_SCHEME,
            "canonicalization": CANONICALIZATION_RFC8785,
            "hash_algorithm": SHA256_ALGORITHM,
            "commitment": commitment,
            "signature": sign_commitment(commitment, self._private_key_pem),
            "key_id": self._key_id,
        }

    def check(
        self,
        fields: Mapping[str, str],
        salt: str,
        proof: Mapping[str, Any],
    ) -> BindingProofStatus:
        if proof.get("scheme") != BINDING_PROOF_SCHEME:
            return BindingProofStatus.INVALID
        commitment = compute_commitment(fields, salt)
        if proof.get("commitment") != commitment:
            return BindingProofStatus.INVALID
        signature = proof.get("signature")
        if not isinstance(signature, str):
            return BindingProofStatus.INVALID
        if verify_commitment_signature(commitment, signature, self._public_key_pem):
            return BindingProofStatus.VERIFIED
        return BindingProofStatus.INVALID


def create_binding_proof_checker(settings: Settings) -> BindingProofChecker:
    """Pick the checker variant matching the configured key material."""
    if not settings.binding_proofs_enabled:
        return DisabledBindingProofChecker()
    return Ed25519BindingProofChecker(
        public_key_pem=settings.binding_proof_public_key or None,
        private_key_pem=settings.binding_proof_signing_key or None,
        key_id=settings.binding_proof_key_id,
    )
