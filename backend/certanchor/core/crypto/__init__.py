"""
Cryptographic primitives for certificate integrity.

Pure library modules:
- **canonicalization**: RFC 8785 canonical JSON
- **commitment**: certificate hashes and salted commitments
- **signing**: Ed25519 signatures over commitments
- **binding_proof**: pluggable binding-proof checkers
"""

from certanchor.core.crypto.binding_proof import (
    BindingProofChecker,
    BindingProofStatus,
    DisabledBindingProofChecker,
    Ed25519BindingProofChecker,
    create_binding_proof_checker,
)
from certanchor.core.crypto.canonicalization import (
    CANONICALIZATION_RFC8785,
    SHA256_ALGORITHM,
    canonicalize_jcs_bytes,
    sha256_hex_jcs,
)
from certanchor.core.crypto.commitment import (
    compute_certificate_hash,
    compute_commitment,
    generate_salt,
)
from certanchor.core.crypto.signing import (
    generate_signing_keypair,
    sign_commitment,
    verify_commitment_signature,
)

__all__ = [
    "canonicalize_jcs_bytes",
    "sha256_hex_jcs",
    "CANONICALIZATION_RFC8785",
    "SHA256_ALGORITHM",
    "compute_certificate_hash",
    "compute_commitment",
    "generate_salt",
    "generate_signing_keypair",
    "sign_commitment",
    "verify_commitment_signature",
    "BindingProofChecker",
    "BindingProofStatus",
    "DisabledBindingProofChecker",
    "Ed25519BindingProofChecker",
    "create_binding_proof_checker",
]
