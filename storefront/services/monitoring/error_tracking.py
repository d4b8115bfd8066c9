"""
Sentry Error Tracking
Optional Sentry reporting for chat turn and product sync failures
"""

from typing import Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration

logger = structlog.get_logger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry SDK with FastAPI integration.

    No-op (with a warning log) when SENTRY_DSN is not configured.

    Returns:
        True if Sentry was initialized
    """
    from storefront.config import settings

    if settings.sentry_dsn is None:
        logger.warning("sentry_disabled", reason="dsn_not_configured")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment or settings.environment,
        traces_sample_rate=0.1,
        integrations=[
            FastApiIntegration(),
        ],
    )
    logger.info(
        "sentry_initialized",
        environment=settings.sentry_environment or settings.environment,
    )
    return True


def capture_exception(
    error: BaseException,
    component: str,
    connection_id: Optional[str] = None
) -> None:
    """
    Report an exception to Sentry tagged with the failing component.

    No-op when Sentry is not initialized.

    Args:
        error: Exception to report
        component: Where it happened (e.g. "chat", "product_sync")
        connection_id: Chat connection ID, if any
    """
    tags = {"component": component}
    if connection_id:
        tags["connection_id"] = connection_id
    sentry_sdk.capture_exception(error, tags=tags)
