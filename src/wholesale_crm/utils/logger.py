"""
Logging Configuration

structlog setup for the CRM API, scripts and services. Every entry carries
the service name, version and environment, plus whatever request context
(request id, acting user) the API middleware has bound.
"""
import logging
import sys
from typing import Any, List

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

# Seller and buyer contact fields that must not reach log storage verbatim
CONTACT_FIELDS = ("phone", "email")

# Superseded by the request_completed event the API middleware emits
QUIET_LOGGERS = ("uvicorn.access",)


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the deployment identity on every entry."""
    event_dict.setdefault("service", settings.service_name)
    event_dict.setdefault("version", settings.api_version)
    event_dict["environment"] = settings.environment
    return event_dict


def mask_contact_details(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Mask lead and buyer phone numbers and emails.

    Keeps the last four characters so support can still correlate a record.
    """
    for field in CONTACT_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and value:
            event_dict[field] = "***" + value[-4:] if len(value) > 4 else "***"
    return event_dict


def _renderers() -> List[Processor]:
    if settings.log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.processors.ExceptionRenderer(), structlog.dev.ConsoleRenderer()]


def setup_logging() -> structlog.BoundLogger:
    """
    Configure stdlib logging and structlog from settings.

    ``LOG_FORMAT=json`` renders one JSON object per line; anything else
    uses the console renderer.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        mask_contact_details,
        *_renderers(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger(settings.service_name)


def get_logger(name: str = None) -> structlog.BoundLogger:
    """Module logger, e.g. ``get_logger(__name__)``."""
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_request_context(**values: Any) -> None:
    """
    Bind per-request values (request id, acting user) to every log entry.

    Values are stored in structlog's contextvars and merged by
    ``merge_contextvars`` until ``clear_request_context`` is called.
    """
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    """Drop all values bound with ``bind_request_context``."""
    structlog.contextvars.clear_contextvars()
