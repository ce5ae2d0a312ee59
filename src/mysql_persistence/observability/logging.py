"""
mysql_persistence.observability.logging

Structured logging configuration for persistence components.

Responsibilities:
- Configure `structlog` for JSON logs suitable for ELK/Splunk/Datadog.
- Provide a small wrapper for obtaining bound loggers.
- Bind a correlation id for a block of persistence calls.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from mysql_persistence.settings import MysqlSettings, get_settings


def configure_logging(settings: MysqlSettings | None = None) -> None:
    """
    Route persistence events through stdlib logging as one JSON object per line.

    Applications call this once at start-up; `settings.log_level` sets the root
    level and `settings.service_name` is stamped on every event.
    """

    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    # basicConfig is a no-op once the root logger has handlers.
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(settings.service_name),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_context(correlation_id: str | None) -> dict[str, Any]:
    """
    Event fields for an explicit `correlation_id`.

    Empty when no id was passed, so an id bound by `correlation_context` is kept.
    """

    if correlation_id is None:
        return {}
    return {"correlation_id": correlation_id}


@contextmanager
def correlation_context(correlation_id: str | None) -> Iterator[None]:
    """
    Attach `correlation_id` to every log line emitted inside the block.
    """

    if not correlation_id:
        yield
        return
    tokens = structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


# --- Module Notes -----------------------------------------------------------
# Components also accept an explicit `correlation_id` keyword; it is added to the
# event itself, so both styles end up in the same JSON field.
