"""Structured logging for the scorekeeper, built on structlog.

Output goes to stdout and, when a log directory is configured, to one file per
session (see rotate_log_file).

Environment variables:
- LOG_FORMAT: "json" for machine-readable lines, "console" or unset for the
  human-readable renderer.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_VALID_LOG_FORMATS = {"json", "console", ""}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Render Enum values (top level and one dict level down) by their .value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, dict):
            event_dict[key] = {k: v.value if isinstance(v, Enum) else v for k, v in value.items()}
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _json_mode() -> bool:
    value = os.environ.get("LOG_FORMAT", "").lower()
    if value not in _VALID_LOG_FORMATS:
        msg = f"Invalid LOG_FORMAT={value!r}. Must be 'json', 'console', or unset."
        raise ValueError(msg)
    return value == "json"


def _level_from_env() -> int:
    value = os.environ.get("LOG_LEVEL", "INFO").upper()
    if value not in _VALID_LOG_LEVELS:
        msg = f"Invalid LOG_LEVEL={value!r}. Must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}."
        raise ValueError(msg)
    return getattr(logging, value)


def _formatter(*, json_mode: bool, colors: bool = False) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _file_handler(log_dir: Path | str, name: str | None) -> tuple[logging.FileHandler, Path]:
    dir_path = Path(log_dir)
    dir_path.mkdir(parents=True, exist_ok=True)
    stem = name or datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    file_path = dir_path / f"{stem}.log"
    handler = logging.FileHandler(file_path)
    handler.setFormatter(_formatter(json_mode=_json_mode()))
    return handler, file_path


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Configure structlog and the stdlib root logger.

    The level comes from ``level`` or, when omitted, LOG_LEVEL. With a
    log_dir a timestamped file is opened there and its path returned. Files
    are not created under pytest.
    """
    json_mode = _json_mode()
    if level is None:
        level = _level_from_env()

    # exception formatting happens once, in the handler formatters
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root_logger.addHandler(stdout_handler)

    if log_dir is None or _is_test():
        return None

    handler, file_path = _file_handler(log_dir, None)
    root_logger.addHandler(handler)
    return file_path


def rotate_log_file(log_dir: Path | str, name: str | None = None) -> Path | None:
    """Swap the active log file for a new one in log_dir.

    ``name`` becomes the file stem (a game id, for one file per game);
    otherwise a timestamp is used. The stdout handler is left alone. Returns
    None under pytest.
    """
    if _is_test():
        return None

    root_logger = logging.getLogger()
    for existing in [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]:
        existing.close()
        root_logger.removeHandler(existing)

    handler, file_path = _file_handler(log_dir, name)
    root_logger.addHandler(handler)
    return file_path
