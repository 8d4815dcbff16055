"""
NewsAgg Custom Exceptions
=========================

Exception hierarchy for the ingestion pipeline. Every error carries an
error code and a context dict so the orchestrator can log it in structured
form before folding it into a per-source summary or the run log.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_ERROR = "D006"

    # Fetch errors (F001-F099)
    FETCH_INVALID_URL = "F001"
    FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FETCH_NETWORK_ERROR = "F004"
    FETCH_HTTP_STATUS = "F005"

    # Scraping errors (H001-H099)
    SCRAPE_CONFIG_MISSING = "H001"
    SCRAPE_EXTRACTION_FAILED = "H002"
    SCRAPE_BROWSER_ERROR = "H003"
    SCRAPE_NAVIGATION_TIMEOUT = "H004"

    # Source errors (R001-R099)
    SOURCE_NOT_FOUND = "R001"
    SOURCE_DISABLED = "R002"
    SOURCE_TYPE_UNSUPPORTED = "R003"

    # Validation errors (V001-V099)
    VALIDATION_INVALID_FORMAT = "V002"


class NewsAggError(Exception):
    """Base exception for all NewsAgg errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize NewsAgg error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: Message suitable for summaries and CLI output
            recoverable: Whether re-triggering the operation may succeed
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.message,
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {self.message}"
        return self.message


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(NewsAggError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(NewsAggError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for NewsAggError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FetchError(NewsAggError):
    """Network fetch errors: timeouts, connection failures and non-2xx responses."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
        **kwargs,
    ):
        """Initialize fetch error.

        Args:
            message: Error message
            url: URL that failed
            status: HTTP status code, when a response was received
            **kwargs: Additional arguments for NewsAggError
        """
        context = kwargs.get("context", {})
        if url:
            context["url"] = url
        if status is not None:
            context["status"] = status
        self.status = status

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FETCH_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get("user_message", f"Fetch failed: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FeedParseError(NewsAggError):
    """Raised when a feed body cannot be parsed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_PARSE_ERROR),
            context=context,
            user_message=kwargs.get("user_message", f"Feed could not be parsed: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class ScrapingError(NewsAggError):
    """HTML scraping errors."""

    def __init__(
        self,
        message: str,
        website_id: Optional[str] = None,
        strategy: Optional[str] = None,
        **kwargs,
    ):
        """Initialize scraping error.

        Args:
            message: Error message
            website_id: Website configuration id
            strategy: Scraper strategy that failed
            **kwargs: Additional arguments for NewsAggError
        """
        context = kwargs.get("context", {})
        if website_id:
            context["website_id"] = website_id
        if strategy:
            context["strategy"] = strategy

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.SCRAPE_EXTRACTION_FAILED),
            context=context,
            user_message=kwargs.get("user_message", f"Scraping failed: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class ScrapingConfigError(ScrapingError):
    """Missing or unknown website scraping configuration."""

    def __init__(self, message: str, website_id: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.SCRAPE_CONFIG_MISSING)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, website_id=website_id, **kwargs)


class BrowserError(ScrapingError):
    """Headless browser launch or navigation errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.SCRAPE_BROWSER_ERROR)
        kwargs.setdefault("strategy", "enhanced")
        super().__init__(message, **kwargs)


class SourceError(NewsAggError):
    """Source registry errors."""

    def __init__(self, message: str, source_id: Optional[int] = None, **kwargs):
        context = kwargs.get("context", {})
        if source_id is not None:
            context["source_id"] = source_id
        self.source_id = source_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.SOURCE_NOT_FOUND),
            context=context,
            user_message=kwargs.get("user_message", message),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class SourceNotFoundError(SourceError):
    """Requested source does not exist."""

    def __init__(self, source_id: int, **kwargs):
        super().__init__(
            f"Source with ID {source_id} not found.",
            source_id=source_id,
            error_code=ErrorCode.SOURCE_NOT_FOUND,
            **kwargs,
        )


class SourceDisabledError(SourceError):
    """Requested source exists but is disabled."""

    def __init__(self, source_id: int, source_name: Optional[str] = None, **kwargs):
        label = f'"{source_name}"' if source_name else f"with ID {source_id}"
        super().__init__(
            f"Source {label} is disabled.",
            source_id=source_id,
            error_code=ErrorCode.SOURCE_DISABLED,
            **kwargs,
        )


class UnsupportedSourceTypeError(SourceError):
    """Source type has no processor."""

    def __init__(self, source_type: str, **kwargs):
        self.source_type = source_type
        super().__init__(
            f"Unknown source type: {source_type}",
            error_code=ErrorCode.SOURCE_TYPE_UNSUPPORTED,
            **kwargs,
        )


class ValidationError(NewsAggError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


# Exception handling utilities


def error_message(exception: BaseException) -> str:
    """Plain message for an exception, without the error code prefix.

    This is the text stored in summaries, run logs and source bookkeeping.
    """
    if isinstance(exception, NewsAggError):
        return exception.message
    message = str(exception)
    return message or type(exception).__name__


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> NewsAggError:
    """Convert generic exceptions to NewsAgg exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        NewsAgg exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, NewsAggError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    if isinstance(exception, TimeoutError):
        error = FetchError(
            message=f"Timed out during {operation}",
            error_code=ErrorCode.FETCH_TIMEOUT,
            context=context,
        )
    elif isinstance(exception, ConnectionError):
        error = FetchError(
            message=f"Network error during {operation}: {error_message(exception)}",
            context=context,
        )
    else:
        error = NewsAggError(
            message=error_message(exception),
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error
