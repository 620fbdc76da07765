"""Command-line entry point: serve the grammar API or run a one-off check."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

import uvicorn

from .ai.analysis.errors import AnalysisError
from .ai.analysis.pipeline import AnalysisContext, AnalysisService
from .api.http import create_app
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_ENV_PREFIX = "WORDWISE_"
_YES = frozenset({"1", "true", "yes", "on", "debug"})
_NO = frozenset({"0", "false", "no", "off", "disabled"})


def configure_logging(debug: bool = False, *, force: bool = False) -> Path:
    level = logging.DEBUG if debug else logging.INFO
    path = logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging to %s at %s", path, logging.getLevelName(level))
    return path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load settings through ``store``; an unreadable store yields the defaults."""

    store = store or SettingsStore(path)
    try:
        return store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Using default settings, %s could not be loaded: %s", store.path, exc)
        return Settings()


def build_context(settings: Settings) -> AnalysisContext:
    return AnalysisContext.from_settings(settings)


def main(argv: Sequence[str] | None = None) -> int:
    options = _build_parser().parse_args(argv)
    debug = os.environ.get(f"{_ENV_PREFIX}DEBUG", "").strip().lower() in _YES
    configure_logging(debug)

    location = options.settings_path or os.environ.get(f"{_ENV_PREFIX}SETTINGS_PATH")
    store = SettingsStore(Path(location).expanduser() if location else None)
    try:
        overrides = _coerce_cli_overrides(options.overrides)
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(store=store, overrides=overrides or None)
    if options.dump_settings:
        _dump_settings(settings, store, overrides=overrides)
        return 0
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if options.command == "check":
        text = sys.stdin.read() if options.text is None else options.text
        return asyncio.run(_run_check(settings, text, options.level))
    return _serve(settings)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wordwise",
        description="Serve streaming grammar suggestions over HTTP, or check a single text.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=("serve", "check"),
        help="serve (default) starts the HTTP API; check analyses --text or stdin and prints NDJSON.",
    )
    parser.add_argument("--text", help="Text for the check command. Read from stdin when omitted.")
    parser.add_argument("--level", default="full", choices=("spelling", "full"))
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings with the API key masked, then exit.",
    )
    parser.add_argument("--settings-path", metavar="PATH", help="Settings file (default ~/.wordwise/settings.json).")
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override one setting for this run. May be repeated.",
    )
    return parser


def _serve(settings: Settings) -> int:
    application = create_app(build_context(settings))
    _LOGGER.info("Listening on %s:%d using model %s", settings.host, settings.port, settings.model)
    uvicorn.run(
        application,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level="debug" if settings.debug_logging else "info",
    )
    return 0


async def _run_check(settings: Settings, text: str, level: str, *, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    context = build_context(settings)
    try:
        response = await AnalysisService(context).check(text, level, client_key="cli")
        async for line in response.lines:
            out.write(line)
    except AnalysisError as exc:
        print(f"Grammar check failed: {exc}", file=sys.stderr)
        return 1
    finally:
        close = getattr(context.source, "aclose", None)
        if close is not None:
            await close()
    return 0


# ----------------------------------------------------------------------
# --set KEY=VALUE handling
# ----------------------------------------------------------------------
def _parse_flag(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _YES:
        return True
    if lowered in _NO:
        return False
    raise ValueError(f"'{raw}' is not a boolean")


def _parse_object(raw: str) -> dict[str, Any]:
    try:
        value = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        raise ValueError("expected a JSON object") from exc
    if not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    return value


_CONVERTERS: dict[Any, Callable[[str], Any]] = {
    bool: _parse_flag,
    int: lambda raw: int(raw, 10),
    float: float,
    dict: _parse_object,
}


def _coerce_cli_overrides(items: Sequence[str]) -> dict[str, Any]:
    if not items:
        return {}
    hints = get_type_hints(Settings)
    known = {item.name for item in fields(Settings)}
    parsed: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep:
            raise ValueError(f"'{item}' must be written as KEY=VALUE")
        if not key:
            raise ValueError(f"'{item}' has no setting name")
        if key not in known:
            raise ValueError(f"unknown setting '{key}'")
        parsed[key] = _convert(hints[key], raw.strip())
    return parsed


def _convert(annotation: Any, raw: str) -> Any:
    options = [arg for arg in get_args(annotation) if arg is not type(None)]
    nullable = len(options) < len(get_args(annotation))
    if nullable and raw.lower() in {"none", "null"}:
        return None
    target = get_origin(annotation) or annotation
    if nullable and options:
        target = get_origin(options[0]) or options[0]
    converter = _CONVERTERS.get(target)
    return converter(raw) if converter is not None else raw


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    out = stream or sys.stdout
    values = asdict(settings)
    values["api_key"] = redact_secret(settings.api_key)
    report = {
        "settings": values,
        "meta": {
            "path": str(store.path),
            "secret_backend": store.vault.strategy,
            "cli_overrides": sorted(overrides),
            "environment_variables": sorted(name for name in os.environ if name.startswith(_ENV_PREFIX)),
        },
    }
    json.dump(report, out, indent=2)
    out.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual launch
    raise SystemExit(main())
