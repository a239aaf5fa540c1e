"""Logging utilities for the enforcement engine."""

from __future__ import annotations

import logging
from typing import Any

import structlog

# event keys that could carry message bodies or unmasked contact data
REDACTED_KEYS = frozenset({"text", "content", "message_text", "raw", "matched"})


def redact_message_text(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Drop message bodies before rendering."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    """Configure structlog with JSON output, or a console renderer for local use."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format="%(message)s", force=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            redact_message_text,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


__all__ = ["configure_logging", "redact_message_text"]
