"""
PlanetFeed Custom Exceptions
===========================

Error hierarchy with error codes and structured context. Per-feed errors
are recoverable (the run continues); configuration and storage errors
abort the run.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Feed ingestion errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_TOO_MANY_REDIRECTS = "F006"

    # Item content errors (P001-P099)
    CONTENT_INVALID = "P001"
    CONTENT_MALFORMED_ITEM = "P002"

    # Snapshot storage errors (S001-S099)
    STORAGE_READ_ERROR = "S001"
    STORAGE_WRITE_ERROR = "S002"
    STORAGE_CORRUPT = "S003"


class PlanetFeedError(Exception):
    """Base exception for all PlanetFeed errors.

    Subclasses set the class-level defaults; any of them can be overridden
    per instance through the keyword arguments.
    """

    default_error_code: Optional[ErrorCode] = None
    user_message_prefix: Optional[str] = None
    default_recoverable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """Initialize PlanetFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: Message shown on the console
            recoverable: Whether the run can continue past this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.context = context or {}
        if user_message is None:
            user_message = (
                f"{self.user_message_prefix}: {message}" if self.user_message_prefix else message
            )
        self.user_message = user_message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    @staticmethod
    def _add_context(kwargs: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
        """Merge the non-empty fields into kwargs["context"]."""
        context = dict(kwargs.pop("context", None) or {})
        context.update({key: value for key, value in fields.items() if value is not None})
        kwargs["context"] = context
        return kwargs

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(PlanetFeedError):
    """Missing or invalid settings or feed list. Always fatal for a run."""

    default_error_code = ErrorCode.CONFIG_INVALID
    user_message_prefix = "Configuration error"

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, **self._add_context(kwargs, config_key=config_key))


class FeedError(PlanetFeedError):
    """Failure confined to a single feed."""

    default_error_code = ErrorCode.FEED_NETWORK_ERROR
    user_message_prefix = "Feed processing failed"
    default_recoverable = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        super().__init__(message, **self._add_context(kwargs, feed_url=feed_url))


class FeedFetchError(FeedError):
    """Network, timeout, HTTP status, or redirect-limit failure for one feed."""

    def __init__(
        self,
        message: str,
        feed_url: Optional[str] = None,
        status: Optional[int] = None,
        **kwargs,
    ):
        self.status = status
        super().__init__(message, feed_url=feed_url, **self._add_context(kwargs, status=status))


class FeedParseError(FeedError):
    """Document could not be parsed as RSS or Atom."""

    default_error_code = ErrorCode.FEED_PARSE_ERROR


class ContentValidationError(PlanetFeedError):
    """Item content failed validation."""

    default_error_code = ErrorCode.CONTENT_INVALID
    user_message_prefix = "Content validation failed"
    default_recoverable = True

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        super().__init__(message, **self._add_context(kwargs, field_name=field_name))


class MalformedItemError(ContentValidationError):
    """Feed entry missing a title, link, or publish date."""

    default_error_code = ErrorCode.CONTENT_MALFORMED_ITEM


class StorageError(PlanetFeedError):
    """Snapshot read/write errors."""

    default_error_code = ErrorCode.STORAGE_READ_ERROR
    user_message_prefix = "Storage error"

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **self._add_context(kwargs, path=path))


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> PlanetFeedError:
    """Wrap an exception that escaped a run and log it once.

    PlanetFeed errors pass through unchanged. Operating-system errors can
    only come from snapshot or log files at this level, so they become
    StorageError; anything else is reported as unexpected.
    """
    if isinstance(exception, PlanetFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, OSError):
        error: PlanetFeedError = StorageError(
            f"Storage failure during {operation}: {exception}",
            error_code=ErrorCode.STORAGE_WRITE_ERROR,
            context=context,
        )
    else:
        error = PlanetFeedError(
            f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error
