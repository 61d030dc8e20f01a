"""Structured logging for Gatehouse.

Every entry carries the correlation id of the request it was written for, so
a login, its ability checks and any suspension it triggers can be followed
together. Credentials never reach the output: values under secret-looking
keys are masked before rendering.
"""

import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from gatehouse.core.config import get_settings

SECRET_KEYS = frozenset(
    {"password", "new_password", "password_hash", "token", "access_token", "secret_key"}
)
MASK = "***"


def new_correlation_id() -> str:
    return f"cid_{uuid.uuid4().hex[:12]}"


def ensure_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Give entries written outside a request their own correlation id."""
    event_dict.setdefault("correlation_id", new_correlation_id())
    return event_dict


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["logger"] = getattr(logger, "name", "gatehouse")
    return event_dict


def mask_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace the values of credential fields with a fixed mask."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = MASK
    return event_dict


def event_as_message(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def configure_logging(settings: Any | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Development and ``log_format="console"`` get a coloured console renderer;
    everything else writes one JSON object per line.

    Args:
        settings: Settings to read ``log_level``, ``log_format`` and the
            environment from. Defaults to the cached application settings.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        ensure_correlation_id,
        mask_secrets,
        event_as_message,
    ]

    console = settings.is_development or settings.log_format == "console"
    if console:
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=not console,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a logger; modules pass ``__name__``."""
    return structlog.get_logger(name or "gatehouse")


def bind_correlation_id(correlation_id: str) -> None:
    """Attach ``correlation_id`` to every entry logged in the current context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
