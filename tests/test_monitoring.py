"""
Tests for logging and error tracking setup
"""

import json
import logging
from unittest.mock import patch

import pytest
import structlog

from storefront.services.monitoring import CorrelationJsonFormatter, capture_exception, init_sentry, setup_logging
from storefront.services.monitoring.logging import SERVICE_NAME


class TestLogging:
    """Tests for setup_logging and CorrelationJsonFormatter."""

    def test_record_carries_correlation_and_service(self):
        handler = setup_logging()
        record = logging.LogRecord("storefront", logging.INFO, __file__, 1, "sync done", None, None)

        payload = json.loads(handler.format(record))

        assert isinstance(handler.formatter, CorrelationJsonFormatter)
        assert payload["message"] == "sync done"
        assert payload["correlation_id"] == "none"
        assert payload["service"] == SERVICE_NAME

    def test_level_filters_structlog_events(self, capsys):
        """Debug events are dropped at INFO and emitted at DEBUG."""
        log = structlog.get_logger("storefront.test")

        setup_logging(logging.INFO)
        log.debug("cache_hit", key="cache:products")
        log.info("product_sync_completed", documents=2)
        at_info = capsys.readouterr().out

        setup_logging(logging.DEBUG)
        log.debug("cache_hit", key="cache:products")
        at_debug = capsys.readouterr().out
        with capsys.disabled():
            setup_logging()

        assert "cache_hit" not in at_info
        assert "product_sync_completed" in at_info
        assert "cache_hit" in at_debug

    def test_repeated_setup_keeps_one_handler(self):
        setup_logging()
        setup_logging()

        json_handlers = [
            h for h in logging.getLogger().handlers
            if isinstance(h.formatter, CorrelationJsonFormatter)
        ]
        assert len(json_handlers) == 1


class TestErrorTracking:
    """Tests for Sentry helpers."""

    def test_init_without_dsn_is_disabled(self):
        with patch("storefront.config.settings.sentry_dsn", None):
            assert init_sentry() is False

    def test_capture_exception_tags_component(self):
        error = RuntimeError("boom")

        with patch("storefront.services.monitoring.error_tracking.sentry_sdk") as sentry:
            capture_exception(error, component="chat", connection_id="abc")

        sentry.capture_exception.assert_called_once_with(
            error,
            tags={"component": "chat", "connection_id": "abc"}
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
