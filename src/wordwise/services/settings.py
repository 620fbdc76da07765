"""Service configuration, its JSON file on disk and the API key vault."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from cryptography.fernet import Fernet, InvalidToken

__all__ = [
    "Settings",
    "SettingsStore",
    "SecretVault",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)

CONFIG_HOME = Path.home() / ".wordwise"
SCHEMA_VERSION = 1
CIPHERTEXT_KEY = "api_key_ciphertext"


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the analysis service and editing sessions."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    temperature: float = 0.0
    organization: str | None = None
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    cache_ttl_seconds: float = 15 * 60.0
    cache_max_entries: int = 500
    rate_limit_requests: int = 120
    rate_limit_window_seconds: float = 60 * 60.0
    history_debounce_seconds: float = 1.0
    analysis_debounce_seconds: float = 2.0
    host: str = "127.0.0.1"
    port: int = 8000
    debug_logging: bool = False
    default_headers: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


def _field_names() -> set[str]:
    return {item.name for item in fields(Settings)}


def _as_flag(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on", "debug"}


# environment variable -> (settings field, parser)
_ENVIRONMENT: dict[str, tuple[str, Callable[[str], Any]]] = {
    "WORDWISE_API_KEY": ("api_key", str),
    "WORDWISE_BASE_URL": ("base_url", str),
    "WORDWISE_MODEL": ("model", str),
    "WORDWISE_ORGANIZATION": ("organization", str),
    "WORDWISE_HOST": ("host", str),
    "WORDWISE_PORT": ("port", int),
    "WORDWISE_RATE_LIMIT": ("rate_limit_requests", int),
    "WORDWISE_RATE_WINDOW": ("rate_limit_window_seconds", float),
    "WORDWISE_CACHE_TTL": ("cache_ttl_seconds", float),
    "WORDWISE_REQUEST_TIMEOUT": ("request_timeout", float),
    "WORDWISE_TEMPERATURE": ("temperature", float),
    "WORDWISE_DEBUG_LOGGING": ("debug_logging", _as_flag),
}


def _write_atomically(path: Path, data: bytes, *, private: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_name(path.name + ".partial")
    staging.write_bytes(data)
    if private and os.name != "nt":  # pragma: no cover - POSIX only
        os.chmod(staging, 0o600)
    staging.replace(path)


class SecretVault:
    """Fernet encryption for the stored API key.

    Tokens are written as ``fernet:<token>``. The key file is created on first
    use next to the settings file and kept private to the current user.
    """

    name = "fernet"

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._key_path = key_path or CONFIG_HOME / "settings.key"
        self._cipher: Fernet | None = None

    @property
    def strategy(self) -> str:
        return self.name

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._fernet().encrypt(secret.encode("utf-8")).decode("ascii")
        return f"{self.name}:{token}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        scheme, _, body = token.partition(":")
        if not body:
            scheme, body = "", token
        if scheme and scheme != self.name:
            LOGGER.warning("Secret uses unsupported scheme %r; leaving it untouched.", scheme)
            return token
        try:
            return self._fernet().decrypt(body.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("API key ciphertext does not match the vault key") from exc

    def _fernet(self) -> Fernet:
        if self._cipher is None:
            if self._key_path.exists():
                key = self._key_path.read_bytes().strip()
            else:
                key = Fernet.generate_key()
                _write_atomically(self._key_path, key, private=True)
            self._cipher = Fernet(key)
        return self._cipher


class SettingsStore:
    """Reads and writes :class:`Settings` as JSON, with the API key encrypted."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or CONFIG_HOME / "settings.json"
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Build settings from file, then ``overrides``, then ``WORDWISE_*`` variables.

        A file that still carries a plaintext ``api_key`` or an older schema
        version is rewritten in the current format.
        """

        stored = self._read()
        settings, rewrite = self._from_payload(stored)
        if rewrite:
            try:
                self.save(settings)
            except OSError as exc:  # pragma: no cover - read-only config dirs
                LOGGER.warning("Could not rewrite %s: %s", self._path, exc)
        if overrides:
            settings = _merge(settings, overrides, source="command line")
        return _merge(settings, self._environment(), source="environment")

    def save(self, settings: Settings) -> Path:
        record = asdict(settings)
        secret = record.pop("api_key", "")
        if secret:
            record[CIPHERTEXT_KEY] = self._vault.encrypt(secret)
        record["version"] = SCHEMA_VERSION
        record["secret_backend"] = self._vault.strategy
        _write_atomically(self._path, json.dumps(record, indent=2, sort_keys=True).encode("utf-8"))
        LOGGER.debug("Wrote settings to %s", self._path)
        return self._path

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _read(self) -> dict[str, Any]:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring settings file %s: expected a JSON object", self._path)
            return {}
        return payload

    def _from_payload(self, payload: dict[str, Any]) -> tuple[Settings, bool]:
        if not payload:
            return Settings(), False
        ciphertext = payload.get(CIPHERTEXT_KEY)
        plaintext = payload.get("api_key")
        known = _field_names() - {"api_key"}
        values = {name: value for name, value in payload.items() if name in known}
        try:
            settings = Settings(**values)
        except TypeError as exc:
            LOGGER.warning("Discarding malformed settings payload: %s", exc)
            settings = Settings()

        api_key = ""
        if ciphertext:
            try:
                api_key = self._vault.decrypt(ciphertext)
            except ValueError as exc:
                LOGGER.warning("Stored API key could not be decrypted: %s", exc)
        elif plaintext:
            LOGGER.info("Moving plaintext API key into encrypted storage.")
            api_key = str(plaintext)
        if api_key:
            settings = replace(settings, api_key=api_key)

        rewrite = bool(plaintext and not ciphertext) or payload.get("version") != SCHEMA_VERSION
        return settings, rewrite

    @staticmethod
    def _environment() -> dict[str, Any]:
        found: dict[str, Any] = {}
        for variable, (name, parse) in _ENVIRONMENT.items():
            raw = os.environ.get(variable)
            if raw is None:
                continue
            try:
                found[name] = parse(raw)
            except ValueError:
                LOGGER.warning("Ignoring %s=%r: expected %s", variable, raw, getattr(parse, "__name__", "value"))
        return found


def _merge(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    known = _field_names()
    changes = {key: value for key, value in overrides.items() if key in known and value is not None}
    if not changes:
        return settings
    extra = changes.get("metadata")
    if isinstance(extra, Mapping):
        changes["metadata"] = {**settings.metadata, **extra}
    LOGGER.debug("Settings overridden from %s: %s", source, ", ".join(sorted(changes)))
    return replace(settings, **changes)


def redact_secret(value: str) -> str:
    """Mask all but the first two and last two characters of ``value``."""

    secret = (value or "").strip()
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]
