"""Tests for Ed25519 signing and the binding-proof checkers."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from certanchor.core.crypto.binding_proof import (
    BINDING_PROOF_SCHEME,
    BindingProofStatus,
    DisabledBindingProofChecker,
    Ed25519BindingProofChecker,
    create_binding_proof_checker,
)
from certanchor.core.crypto.commitment import compute_commitment
from certanchor.core.crypto.signing import (
    generate_signing_keypair,
    public_key_from_private,
    sign_commitment,
    verify_commitment_signature,
)

FIELDS = {"studentName": "Ada Lovelace", "registrationNumber": "CS-042"}
SALT = "5a" * 32


class TestSigning:
    def test_sign_and_verify(self) -> None:
        private_pem, public_pem = generate_signing_keypair()
        signature = sign_commitment("a" * 64, private_pem)
        assert verify_commitment_signature("a" * 64, signature, public_pem)

    def test_wrong_commitment_fails(self) -> None:
        private_pem, public_pem = generate_signing_keypair()
        signature = sign_commitment("a" * 64, private_pem)
        assert not verify_commitment_signature("b" * 64, signature, public_pem)

    def test_wrong_key_fails(self) -> None:
        private_pem, _ = generate_signing_keypair()
        _, other_public = generate_signing_keypair()
        signature = sign_commitment("a" * 64, private_pem)
        assert not verify_commitment_signature("a" * 64, signature, other_public)

    def test_malformed_signature_fails(self) -> None:
        _, public_pem = generate_signing_keypair()
        assert not verify_commitment_signature("a" * 64, "not base64!!", public_pem)

    def test_public_key_derivation(self) -> None:
        private_pem, public_pem = generate_signing_keypair()
        assert public_key_from_private(private_pem) == public_pem


class TestEd25519BindingProofChecker:
    def test_issue_produces_signed_commitment(self) -> None:
        private_pem, _ = generate_signing_keypair()
        checker = Ed25519BindingProofChecker(private_key_pem=private_pem, key_id="kid-7")

        proof = checker.issue(FIELDS, SALT)

        assert proof is not None
        assert proof["scheme"] == BINDING_PROOF_SCHEME
        assert proof["commitment"] == compute_commitment(FIELDS, SALT)
        assert proof["key_id"] == "kid-7"
        assert checker.check(FIELDS, SALT, proof) is BindingProofStatus.VERIFIED

    def test_verifier_only_checker_checks_but_cannot_issue(self) -> None:
        private_pem, public_pem = generate_signing_keypair()
        issuer = Ed25519BindingProofChecker(private_key_pem=private_pem)
        verifier = Ed25519BindingProofChecker(public_key_pem=public_pem)

        proof = issuer.issue(FIELDS, SALT)

        assert proof is not None
        assert not verifier.can_issue
        assert verifier.issue(FIELDS, SALT) is None
        assert verifier.check(FIELDS, SALT, proof) is BindingProofStatus.VERIFIED

    def test_tampered_fields_are_invalid(self) -> None:
        private_pem, _ = generate_signing_keypair()
        checker = Ed25519BindingProofChecker(private_key_pem=private_pem)
        proof = checker.issue(FIELDS, SALT)
        assert proof is not None

        tampered = {**FIELDS, "studentName": "Ada Byron"}
        assert checker.check(tampered, SALT, proof) is BindingProofStatus.INVALID

    def test_wrong_salt_is_invalid(self) -> None:
        private_pem, _ = generate_signing_keypair()
        checker = Ed25519BindingProofChecker(private_key_pem=private_pem)
        proof = checker.issue(FIELDS, SALT)
        assert proof is not None
        assert checker.check(FIELDS, "00" * 32, proof) is BindingProofStatus.INVALID

    def test_proof_signed_by_other_key_is_invalid(self) -> None:
        private_pem, _ = generate_signing_keypair()
        _, other_public = generate_signing_keypair()
        proof = Ed25519BindingProofChecker(private_key_pem=private_pem).issue(FIELDS, SALT)
        assert proof is not None

        checker = Ed25519BindingProofChecker(public_key_pem=other_public)
        assert checker.check(FIELDS, SALT, proof) is BindingProofStatus.INVALID

    @pytest.mark.parametrize(
        "proof",
        [
            {},
            {"scheme": "zk-snark", "commitment": "x", "signature": "y"},
            {"scheme": BINDING_PROOF_SCHEME, "commitment": "x", "signature": None},
        ],
    )
    def test_malformed_proofs_are_invalid(self, proof: dict[str, object]) -> None:
        _, public_pem = generate_signing_keypair()
        checker = Ed25519BindingProofChecker(public_key_pem=public_pem)
        assert checker.check(FIELDS, SALT, proof) is BindingProofStatus.INVALID

    def test_requires_key_material(self) -> None:
        with pytest.raises(ValueError):
            Ed25519BindingProofChecker()


class TestDisabledBindingProofChecker:
    def test_never_reports_verified(self) -> None:
        checker = DisabledBindingProofChecker()
        assert not checker.enabled
        assert checker.issue(FIELDS, SALT) is None
        assert checker.check(FIELDS, SALT, {"signature": "anything"}) is BindingProofStatus.DISABLED


class TestCreateBindingProofChecker:
    def test_without_keys_is_disabled(self) -> None:
        settings = SimpleNamespace(
            binding_proofs_enabled=False,
            binding_proof_signing_key="",
            binding_proof_public_key="",
            binding_proof_key_id="kid",
        )
        checker = create_binding_proof_checker(settings)  # type: ignore[arg-type]
        assert isinstance(checker, DisabledBindingProofChecker)

    def test_with_signing_key_is_enabled(self) -> None:
        private_pem, _ = generate_signing_keypair()
        settings = SimpleNamespace(
            binding_proofs_enabled=True,
            binding_proof_signing_key=private_pem,
            binding_proof_public_key="",
            binding_proof_key_id="kid-2",
        )
        checker = create_binding_proof_checker(settings)  # type: ignore[arg-type]
        assert isinstance(checker, Ed25519BindingProofChecker)
        assert checker.can_issue
        proof = checker.issue(FIELDS, SALT)
        assert proof is not None and proof["key_id"] == "kid-2"
