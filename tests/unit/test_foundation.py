"""
Foundation Tests for PlanetFeed
==============================

Test suite for configuration, logging, exceptions, and URL validation.
"""

import json
import logging
import logging.handlers
from unittest.mock import patch

import pytest

from planetfeed.config.settings import PlanetFeedSettings, get_settings, load_settings
from planetfeed.utils.exceptions import (
    ConfigurationError,
    ErrorCode,
    FeedError,
    FeedFetchError,
    PlanetFeedError,
    MalformedItemError,
    StorageError,
    handle_exception,
)
from planetfeed.utils.logging import (
    PerformanceLogger,
    configure_application_logging,
    StructuredFormatter,
    get_logger_for_component,
    setup_logger,
)
from planetfeed.utils.validators import URLValidator, normalize_item_url, validate_url


class TestConfiguration:
    """Test configuration loading and validation."""

    def test_defaults(self, test_settings):
        assert test_settings.fetch.request_timeout == 15
        assert test_settings.fetch.max_redirects == 5
        assert test_settings.fetch.parallel_feeds == 4
        assert test_settings.processing.excerpt_length == 1000
        assert test_settings.processing.retention_days == 30
        assert test_settings.fetch.user_agent.startswith("PlanetFeed/")

    def test_environment_override(self, test_settings, monkeypatch):
        monkeypatch.setenv("PLANETFEED_FETCH__PARALLEL_FEEDS", "8")
        monkeypatch.setenv("PLANETFEED_PROCESSING__RETENTION_DAYS", "7")

        settings = get_settings(reload=True)

        assert settings.fetch.parallel_feeds == 8
        assert settings.processing.retention_days == 7

    def test_invalid_value_wrapped(self, test_settings, monkeypatch):
        monkeypatch.setenv("PLANETFEED_FETCH__PARALLEL_FEEDS", "0")

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_blank_user_agent_rejected(self):
        with pytest.raises(ValueError):
            PlanetFeedSettings(fetch={"user_agent": "   "})

    def test_validate_creates_output_directories(self, test_settings, tmp_path):
        test_settings.validate_configuration()

        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "logs").is_dir()

    def test_singleton(self, test_settings):
        assert get_settings() is get_settings()

    def test_debug_forces_debug_level(self, test_settings):
        test_settings.debug = True
        assert test_settings.get_effective_log_level() == "DEBUG"


class TestExceptions:
    """Test exception hierarchy and helpers."""

    def test_error_code_in_str(self):
        error = FeedFetchError("HTTP 500: Server Error", feed_url="https://a.example/feed", status=500,
                               error_code=ErrorCode.FEED_HTTP_ERROR)

        assert str(error) == "[F005] HTTP 500: Server Error"
        assert error.message == "HTTP 500: Server Error"
        assert error.context == {"status": 500, "feed_url": "https://a.example/feed"}
        assert isinstance(error, FeedError)

    def test_to_dict(self):
        data = StorageError("disk full", path="/tmp/items.json").to_dict()

        assert data["error_type"] == "StorageError"
        assert data["context"]["path"] == "/tmp/items.json"
        assert data["recoverable"] is False

    def test_handle_exception_maps_os_error(self):
        logger = logging.getLogger("planetfeed.test")

        error = handle_exception(PermissionError("read-only"), logger, "fetch")

        assert isinstance(error, StorageError)
        assert error.error_code == ErrorCode.STORAGE_WRITE_ERROR
        assert error.context["operation"] == "fetch"
        assert error.recoverable is False

    def test_handle_exception_unexpected(self):
        error = handle_exception(RuntimeError("boom"), logging.getLogger("planetfeed.test"), "fetch")

        assert type(error) is PlanetFeedError
        assert error.user_message == "An unexpected error occurred"
        assert error.context["original_exception_type"] == "RuntimeError"

    def test_handle_exception_passthrough(self):
        original = ConfigurationError("bad")
        assert handle_exception(original, logging.getLogger("planetfeed.test"), "load") is original

    def test_subclass_defaults(self):
        error = MalformedItemError("Item title is empty", field_name="title")

        assert error.error_code == ErrorCode.CONTENT_MALFORMED_ITEM
        assert error.context == {"field_name": "title"}
        assert error.recoverable is True
        assert error.user_message == "Content validation failed: Item title is empty"

    def test_overrides_win_over_defaults(self):
        error = FeedError("gone", error_code=ErrorCode.FEED_HTTP_ERROR, recoverable=False)

        assert error.error_code == ErrorCode.FEED_HTTP_ERROR
        assert error.recoverable is False


class TestLogging:
    """Test logging setup."""

    def test_structured_formatter(self):
        record = logging.LogRecord("planetfeed.test", logging.INFO, __file__, 1, "hello", None, None)
        record.feed_url = "https://a.example/feed"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["extra"]["feed_url"] == "https://a.example/feed"
        assert data["feed_url"] == "https://a.example/feed"

    def test_configure_from_settings(self, test_settings, tmp_path):
        configure_application_logging(test_settings.logging, log_level="DEBUG")
        logger = logging.getLogger("planetfeed")

        try:
            assert logger.level == logging.DEBUG
            assert [type(h) for h in logger.handlers] == [logging.handlers.RotatingFileHandler]
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_setup_logger_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "test.log"
        logger = setup_logger("planetfeed.filetest", level="DEBUG", log_file=str(log_file), console=False)

        logger.info("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert "written to file" in log_file.read_text(encoding="utf-8")
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_component_logger_context(self, caplog):
        adapter = get_logger_for_component("merger", feed_url="https://a.example/feed")

        with caplog.at_level(logging.INFO, logger="planetfeed.merger"):
            adapter.info("merged")

        record = caplog.records[-1]
        assert record.component == "merger"
        assert record.feed_url == "https://a.example/feed"

    def test_performance_logger_duration(self):
        logger = logging.getLogger("planetfeed.perf")
        with PerformanceLogger(logger, "work") as perf:
            pass

        assert perf.duration is not None
        assert perf.duration >= 0


class TestURLValidator:
    """Test URL validation helpers."""

    @pytest.mark.parametrize("url,expected", [
        ("https://example.com/feed", True),
        ("http://example.com", True),
        ("ftp://example.com/feed", False),
        ("/relative/path", False),
        ("", False),
        (None, False),
    ])
    def test_validate_url(self, url, expected):
        assert validate_url(url) is expected

    def test_normalize_removes_single_trailing_slash(self):
        assert normalize_item_url("https://a.example/p/") == "https://a.example/p"
        assert normalize_item_url("https://a.example/p//") == "https://a.example/p/"
        assert normalize_item_url(" https://a.example/p ") == "https://a.example/p"

    def test_resolve(self):
        assert URLValidator.resolve("https://a.example/blog/feed.xml", "../post") == "https://a.example/post"
        assert URLValidator.resolve("https://a.example/feed", "https://b.example/x") == "https://b.example/x"
        assert URLValidator.resolve("https://a.example/feed", "  ") == ""
