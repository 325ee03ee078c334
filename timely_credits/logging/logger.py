"""
Structured logging for the agent: one line per event with timestamp, level,
logger, event_type and the alias / epoch context of the work being done.

LOG_LEVEL (default INFO) and LOG_FORMAT (json | console, default json) are
read from the environment after the project .env has been loaded, so values
set only in .env take effect. configure_logging() runs once on import and can
be called again to switch level or format; loggers returned by get_logger()
resolve the configuration on every call.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

from timely_credits.config.env import load_agent_env

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"


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
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def _resolve_level(level: str | None) -> tuple[str, int]:
    name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    value = getattr(logging, name, None)
    if not isinstance(value, int):
        return DEFAULT_LOG_LEVEL, logging.INFO
    return name, value


def _resolve_format(fmt: str | None) -> str:
    name = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()
    return "json" if name == "json" else "console"


def configure_logging(level: str | None = None, fmt: str | None = None) -> tuple[str, str]:
    """
    Configure structlog and return the (level, format) in effect.

    Explicit arguments win over LOG_LEVEL / LOG_FORMAT; unknown levels fall
    back to INFO and any format other than json renders for the console.
    """
    load_agent_env()
    level_name, level_value = _resolve_level(level)
    fmt_name = _resolve_format(fmt)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if fmt_name == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return level_name, fmt_name


configure_logging()


def get_logger(name: str) -> Any:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("epoch_score_written", alias="chorus-one", epoch=612, score=97.4)

    Output (json): {"alias": "chorus-one", "epoch": 612, "score": 97.4,
    "logger": "module.name", "level": "info", "timestamp": "...",
    "event_type": "epoch_score_written", "message": "epoch_score_written"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_account(alias: str, name: str = "timely_credits") -> Any:
    """Return a logger with alias bound to every event it emits."""
    return get_logger(name).bind(alias=alias)
