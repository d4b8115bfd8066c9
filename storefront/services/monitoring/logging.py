"""
Structured JSON Logging with Correlation ID
Configures structlog for application events and python-json-logger for
standard library loggers (uvicorn, httpx), both carrying the correlation ID.
"""

import logging
import sys

import structlog
from asgi_correlation_id.context import correlation_id
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "storefront-backend"


def _environment() -> str:
    from storefront.config import settings
    return settings.environment


class CorrelationJsonFormatter(jsonlogger.JsonFormatter):
    """
    python-json-logger formatter tagging each record with the request's
    correlation ID (set by CorrelationIdMiddleware), service and environment.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['correlation_id'] = correlation_id.get() or 'none'
        log_record['service'] = SERVICE_NAME
        log_record['environment'] = _environment()


def add_correlation_id(logger, method_name, event_dict):
    """structlog processor adding the request correlation ID."""
    event_dict.setdefault("correlation_id", correlation_id.get() or "none")
    return event_dict


def setup_logging(level: int = logging.INFO) -> logging.Handler:
    """
    Route all logging to stdout as JSON.

    `level` applies to both stdlib loggers and structlog events. Calling
    it again replaces the handler installed by the previous call.

    Returns:
        The stdout handler attached to the root logger
    """
    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing.formatter, CorrelationJsonFormatter):
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CorrelationJsonFormatter(
        '%(timestamp)s %(level)s %(name)s %(message)s',
        rename_fields={'timestamp': 'asctime', 'level': 'levelname'}
    ))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            add_correlation_id,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
    )

    return handler
