"""Tests for settings loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from certanchor.core.config import Settings, get_settings


def test_defaults() -> None:
    settings = Settings(_env_file=None, binding_proof_public_key="pem")

    assert settings.environment == "development"
    assert settings.anchor_log_backend == "file"
    assert settings.anchor_log_path == Path("data/anchor_log.jsonl")
    assert settings.ledger_timeout_seconds == 3.0
    assert settings.ledger_retry_cooldown_seconds is None
    assert settings.certificate_required_fields == ["studentName", "registrationNumber"]
    assert settings.binding_proofs_enabled is True
    assert settings.ledger_configured is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGER_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("CONTRACT_ADDRESS", "0x" + "11" * 20)
    monkeypatch.setenv("ANCHOR_LOG_BACKEND", "database")
    monkeypatch.setenv("CERTIFICATE_REQUIRED_FIELDS", '["studentName"]')
    monkeypatch.setenv("BINDING_PROOF_SIGNING_KEY", "pem")

    settings = get_settings()

    assert settings.ledger_timeout_seconds == 1.5
    assert settings.anchor_log_backend == "database"
    assert settings.certificate_required_fields == ["studentName"]
    assert settings.ledger_configured is True
    assert get_settings() is settings


def test_missing_binding_key_warns_in_development() -> None:
    with pytest.warns(UserWarning, match="cryptographically bound"):
        Settings(_env_file=None)


@pytest.mark.parametrize("environment", ["staging", "production"])
def test_debug_is_rejected_outside_development(environment: str) -> None:
    with pytest.raises(ValidationError, match="debug"):
        Settings(
            _env_file=None,
            environment=environment,
            debug=True,
            contract_address="0x" + "11" * 20,
        )


def test_production_requires_contract_when_ledger_enabled() -> None:
    with pytest.raises(ValidationError, match="contract_address"):
        Settings(_env_file=None, environment="production")

    settings = Settings(_env_file=None, environment="production", ledger_enabled=False)
    assert settings.ledger_configured is False


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ledger_timeout_seconds=0, binding_proof_public_key="pem")
