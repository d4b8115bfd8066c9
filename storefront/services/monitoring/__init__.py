"""
Monitoring Module
Exports for structured logging and error tracking
"""

from storefront.services.monitoring.logging import setup_logging, CorrelationJsonFormatter
from storefront.services.monitoring.error_tracking import init_sentry, capture_exception

__all__ = [
    "setup_logging",
    "CorrelationJsonFormatter",
    "init_sentry",
    "capture_exception",
]
