"""Tests for settings persistence and overrides."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from wordwise.services.settings import SecretVault, Settings, SettingsStore, redact_secret


def _store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json")


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = _store(tmp_path).load()

    assert settings == Settings()
    assert settings.cache_ttl_seconds == 900
    assert settings.rate_limit_requests == 120
    assert settings.rate_limit_window_seconds == 3600


def test_save_round_trip_encrypts_api_key(tmp_path: Path) -> None:
    store = _store(tmp_path)
    original = Settings(api_key="sk-secret-value", model="gpt-4o-mini", port=9001)

    path = store.save(original)
    raw = json.loads(path.read_text(encoding="utf-8"))

    assert "api_key" not in raw
    assert raw["api_key_ciphertext"].startswith("fernet:")
    assert "sk-secret-value" not in path.read_text(encoding="utf-8")
    assert store.load() == original


def test_plaintext_key_is_migrated(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"api_key": "sk-plain", "model": "gpt-4o", "version": 1}), encoding="utf-8")
    store = SettingsStore(path)

    settings = store.load()

    assert settings.api_key == "sk-plain"
    assert "api_key_ciphertext" in json.loads(path.read_text(encoding="utf-8"))


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_cli_overrides_apply_before_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORDWISE_MODEL", "env-model")

    settings = _store(tmp_path).load(overrides={"model": "cli-model", "port": 9100, "unknown": 1})

    assert settings.model == "env-model"
    assert settings.port == 9100


def test_environment_overrides_are_coerced(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORDWISE_API_KEY", "sk-env")
    monkeypatch.setenv("WORDWISE_PORT", "8123")
    monkeypatch.setenv("WORDWISE_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("WORDWISE_CACHE_TTL", "60")

    settings = _store(tmp_path).load()

    assert settings.api_key == "sk-env"
    assert settings.port == 8123
    assert settings.debug_logging is True
    assert settings.cache_ttl_seconds == 60.0


def test_invalid_environment_values_are_ignored(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("WORDWISE_RATE_LIMIT", "lots")

    with caplog.at_level(logging.WARNING, logger="wordwise.services.settings"):
        settings = _store(tmp_path).load()

    assert settings.rate_limit_requests == 120
    assert "WORDWISE_RATE_LIMIT" in caplog.text


def test_vault_round_trip(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "settings.key")

    token = vault.encrypt("hunter2")

    assert token != "hunter2"
    assert vault.decrypt(token) == "hunter2"
    assert SecretVault(key_path=tmp_path / "settings.key").decrypt(token) == "hunter2"
    assert vault.encrypt("") == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", ""), ("abcd", "****"), ("sk-123456", "sk*****56")],
)
def test_redact_secret(value: str, expected: str) -> None:
    assert redact_secret(value) == expected
