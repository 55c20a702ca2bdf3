"""
Logging setup for idpflows.

structlog renders every record, including stdlib records from httpx and
uvicorn: JSON lines in production, plain console lines in development.
Workflow and request IDs bound through contextvars appear on every line.
"""

import logging
import sys
from datetime import UTC, datetime
from typing import Any

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "idpflows"

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def format_utc_timestamp(now: datetime) -> str:
    """ISO8601 UTC with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _add_timestamp_and_app(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = format_utc_timestamp(datetime.now(UTC))
    event_dict["app"] = APP_NAME
    return event_dict


def _level_first(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Put level and timestamp ahead of the event keys in JSON output."""
    head = {k: event_dict.pop(k) for k in ("level", "timestamp") if k in event_dict}
    return {**head, **event_dict}


def _renderers(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [
            _level_first,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(json_logs: bool = True, log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_timestamp_and_app,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
            + _renderers(json_logs),
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
