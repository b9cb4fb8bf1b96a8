"""
FeedVine Custom Exceptions
==========================

Exception hierarchy for the ingestion and enrichment pipeline with error
codes, context information, and user-friendly error messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_NOT_FOUND = "F006"
    FEED_LIST_UNAVAILABLE = "F007"

    # AI processing errors (A001-A099)
    AI_API_ERROR = "A001"
    AI_INVALID_RESPONSE = "A003"
    AI_TIMEOUT = "A004"
    AI_RATE_LIMIT = "A006"
    AI_PROCESSING_ERROR = "A007"
    AI_PROVIDER_UNAVAILABLE = "A008"
    AI_INVALID_CREDENTIALS = "A009"
    AI_CONNECTION_ERROR = "A010"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # Resource management errors (R001-R099)
    DUPLICATE_RESOURCE = "R001"
    RESOURCE_NOT_FOUND = "R002"

    # External service errors (E001-E099)
    EXTERNAL_SERVICE_ERROR = "E001"
    EXTERNAL_SERVICE_UNAVAILABLE = "E002"


class FeedVineError(Exception):
    """Base exception for all FeedVine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedVine error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
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


class ConfigurationError(FeedVineError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedVineError
        """
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.pop("user_message", f"Configuration error: {message}"),
            **kwargs,
        )


class DatabaseError(FeedVineError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for FeedVineError
        """
        context = kwargs.pop("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.pop("user_message", "Database operation failed"),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class PersistenceError(DatabaseError):
    """Storage failure while upserting articles or writing feed status."""

    def __init__(self, message: str, feed_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_id:
            context["feed_id"] = feed_id

        super().__init__(
            message,
            context=context,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_TRANSACTION),
            **kwargs,
        )


class FeedError(FeedVineError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedVineError
        """
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.pop(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class FetchError(FeedError):
    """Transport or HTTP failure while reaching a feed source."""

    def __init__(
        self,
        message: str,
        feed_url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        """Initialize fetch error.

        Args:
            message: Error message
            feed_url: Feed URL that failed
            status_code: HTTP status when the server answered outside 2xx
            **kwargs: Additional arguments for FeedError
        """
        context = kwargs.pop("context", {})
        if status_code is not None:
            context["status_code"] = status_code
        self.status_code = status_code

        default_code = (
            ErrorCode.FEED_HTTP_ERROR
            if status_code is not None
            else ErrorCode.FEED_NETWORK_ERROR
        )
        super().__init__(
            message,
            feed_url=feed_url,
            context=context,
            error_code=kwargs.pop("error_code", default_code),
            **kwargs,
        )


class ParseError(FeedError):
    """Fetched content is not a well-formed RSS/Atom feed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            feed_url=feed_url,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_PARSE_ERROR),
            recoverable=kwargs.pop("recoverable", False),
            **kwargs,
        )


class SetupError(FeedVineError):
    """The run cannot start, e.g. the feed list cannot be read at all."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_LIST_UNAVAILABLE),
            context=kwargs.pop("context", None),
            user_message=kwargs.pop("user_message", message),
            **kwargs,
        )


class AIError(FeedVineError):
    """AI processing and API errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retryable: bool = False,
        **kwargs,
    ):
        """Initialize AI error.

        Args:
            message: Error message
            provider: AI provider name (e.g., 'anthropic', 'groq')
            retryable: Whether repeating the call could succeed
            **kwargs: Additional arguments for FeedVineError
        """
        context = kwargs.pop("context", {})
        if provider:
            context["ai_provider"] = provider
        self.provider = provider
        self.retryable = retryable

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.AI_API_ERROR),
            context=context,
            user_message=kwargs.pop(
                "user_message", "AI processing temporarily unavailable"
            ),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class ClassificationError(AIError):
    """External classifier unavailable or returned unusable output."""

    pass


class ValidationError(FeedVineError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for FeedVineError
        """
        context = kwargs.pop("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.pop(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.pop("recoverable", False),
            **kwargs,
        )


class FeedManagementError(FeedVineError):
    """Feed registration and lifecycle errors."""

    def __init__(self, message: str, feed_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_id:
            context["feed_id"] = feed_id

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_INVALID_URL),
            context=context,
            user_message=kwargs.pop("user_message", "Feed management operation failed"),
            **kwargs,
        )
