"""
Structured Logging Module

JSON logging for the gateway with a per-request correlation id.

Two kinds of producers share one output format:

- structlog events from the gateway and API layer
  (``logger.warning("provider_failed", provider=...)``)
- stdlib records from the resilience and provider modules
  (``logging.getLogger(__name__).warning(..., extra={"circuit": "ai"})``)

configure_logging() points structlog at the output stream and installs a
ProcessorFormatter on the root handler, so both carry the same timestamp,
level, service and correlation id fields.

Reference Documents:
- GUIDELINES pp. 2309-2319: "Prometheus for metrics collection and structured logging"
- GUIDELINES pp. 2319: Newman "log when timeouts occur, look at what happens"

Pattern: Singleton configuration (configure once at startup)
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

_configured: bool = False
_service_name: Optional[str] = None

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


# =============================================================================
# Correlation ID Context
# =============================================================================

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Correlation id of the request being handled, or None outside one."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def correlation_id_context(correlation_id: str) -> Generator[None, None, None]:
    """
    Scope a correlation id to a block; the previous value is restored on exit.

    Example:
        >>> with correlation_id_context(request.headers["X-Request-ID"]):
        ...     await gateway.chat_sync(messages)
    """
    token = _correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id_var.reset(token)


# =============================================================================
# Processors
# =============================================================================


def add_request_context(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach timestamp, service name and correlation id."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    if _service_name is not None:
        event_dict.setdefault("service", _service_name)

    correlation_id = _correlation_id_var.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def rename_fields(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """log_level -> level, logger_name -> logger"""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")
    return event_dict


_SHARED_PROCESSORS: list[Processor] = [
    structlog.stdlib.add_log_level,
    add_request_context,
    rename_fields,
]


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    service: Optional[str] = None,
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Called once from the application lifespan. Later calls are no-ops
    unless force=True.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR); unknown names mean INFO
        service: Value of the "service" field on every line
        stream: Output stream (default: sys.stdout)
        force: Reconfigure even if already configured (tests)
    """
    global _configured, _service_name

    if _configured and not force:
        return

    output = stream or sys.stdout
    threshold = _LEVELS.get(level.upper(), logging.INFO)
    _service_name = service

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(output)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.ExtraAdder()],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(threshold)

    _configured = True


def reset_logging() -> None:
    """Forget that logging was configured. Tests only."""
    global _configured, _service_name
    _configured = False
    _service_name = None


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Structured logger whose events carry ``logger=name``.

    The returned proxy resolves the active configuration on each use, so
    module-level loggers created before configure_logging() still follow it.
    """
    # "logger" is a reserved keyword of structlog.get_logger
    return structlog.get_logger(logger_name=name)
