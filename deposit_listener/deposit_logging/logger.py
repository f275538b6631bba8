"""
Structured logging: timestamp, level, logger name, event_type.

structlog with ISO timestamps and consistent keys for aggregation. Unlike a
global structlog.configure(), make_logger() builds an independent logger per
component so each monitor can run at its own verbosity. Components receive
their logger at construction; get_logger() is only the module-level fallback.

Uses only Python stdlib logging and structlog; no deposit_listener imports to
avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

# Default log level from env
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# JSON output for production (LOG_FORMAT=json); human-readable for local
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Verbosity names accepted in config; trace has no structlog method and maps to debug
_LEVEL_NAMES: dict[str, int] = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


def resolve_level(level: str | int | None) -> int:
    """Map a verbosity name or stdlib int to a stdlib logging level. Unknown names -> INFO."""
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, int):
        return level
    return _LEVEL_NAMES.get(str(level).strip().lower(), logging.INFO)


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type for consistency; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def _processors() -> list[Any]:
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if LOG_FORMAT == "json":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    return shared_processors


def make_logger(name: str, level: str | int | None = None) -> Any:
    """
    Build a structured logger filtered at the given level.

    Log with event_type (first arg) and keyword context:
        logger = make_logger("deposit_listener.monitor", "debug")
        logger.info("deposit_dispatched", tx_hash=h, category="direct")
    Output (JSON): {"event_type": "deposit_dispatched", "tx_hash": "...", "category": "direct",
    "timestamp": "...", "level": "info", "logger": "deposit_listener.monitor"}
    """
    return structlog.wrap_logger(
        structlog.PrintLogger(file=sys.stdout),
        processors=_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level)),
        context_class=dict,
    ).bind(logger=name)


def get_logger(name: str) -> Any:
    """Return a structured logger for the given module name at the env default level."""
    return make_logger(name, LOG_LEVEL)


def bind_target(logger: Any, address: str) -> Any:
    """Return a logger with watch_address bound to all subsequent log calls."""
    return logger.bind(watch_address=address)
