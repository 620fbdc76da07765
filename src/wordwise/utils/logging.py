"""Logging bootstrap shared by the CLI and the HTTP service."""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["setup_logging", "get_logger", "get_log_path"]

LOG_FILE_NAME = "wordwise.log"
LOG_DIR_ENV = "WORDWISE_LOG_DIR"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that chatter at INFO on every request.
_QUIET: frozenset[str] = frozenset({"asyncio", "httpx", "httpcore", "openai", "uvicorn.access"})


@dataclass(slots=True)
class _LogState:
    path: Path | None = None


_state = _LogState()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install a rotating log file (and stderr output when ``console``) on the root logger.

    Repeat calls are no-ops returning the existing path unless ``force`` is set.
    The directory comes from ``log_dir``, then ``WORDWISE_LOG_DIR``, then
    ``~/.wordwise/logs``.
    """

    if _state.path is not None and not force:
        return _state.path

    directory = Path(log_dir or os.environ.get(LOG_DIR_ENV) or Path.home() / ".wordwise" / "logs")
    directory = directory.expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / LOG_FILE_NAME

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    sinks: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setFormatter(formatter)
        sink.setLevel(level)

    logging.basicConfig(level=level, handlers=sinks, force=True)
    logging.captureWarnings(True)

    third_party_level = max(level, logging.WARNING)
    for name in _QUIET:
        logging.getLogger(name).setLevel(third_party_level)

    _state.path = path
    return path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Path of the active log file, or ``None`` before :func:`setup_logging` runs."""

    return _state.path
