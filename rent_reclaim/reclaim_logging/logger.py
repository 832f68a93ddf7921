"""
Structured JSON logging: timestamp, account, event_type.

structlog with ISO timestamps, log level, and consistent keys so reclaim runs
can be grepped or shipped to an aggregator. All modules use get_logger() and
pass event_type (and account / flags / signature where relevant).

No rent_reclaim imports here to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# JSON output for production (LOG_FORMAT=json); human-readable for local runs
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


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


def configure_structlog(level: int = LOG_LEVEL_VALUE, fmt: str = LOG_FORMAT) -> None:
    """Configure structlog: JSON or console renderer, timestamp, level, event_type."""
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if fmt == "json":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers resolve the config per call so set_log_level reaches module-level loggers
        cache_logger_on_first_use=False,
    )


def set_log_level(level_name: str) -> None:
    """Change the level only (CLI --log-level / settings.log_level); renderer and output stay."""
    value = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(value))


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("account_analyzed", account=addr, flags=["RECENTLY_ACTIVE"])
    """
    # Initial values stay on the lazy proxy, so set_log_level still reaches this logger
    return structlog.get_logger(name, logger_name=name)


def bind_account(address: str) -> structlog.BoundLogger:
    """Return a logger with account bound to all subsequent log calls."""
    return get_logger("rent_reclaim").bind(account=short_address(address))


def short_address(address: str | None) -> str:
    """Truncate an address for log lines; the audit trail keeps the full value."""
    address = address or ""
    return address[:16] + "..." if len(address) > 16 else address
