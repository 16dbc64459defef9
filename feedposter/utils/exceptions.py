"""
FeedPoster Custom Exceptions
============================

Exception hierarchy for FeedPoster with error codes, context information
and user-friendly messages. Every failure surfaced in a run summary is one
of these types.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_READ = "D003"
    DATABASE_WRITE = "D004"

    # Feed ingestion errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"

    # Item processing errors (P001-P099)
    ITEM_DATE_INVALID = "P001"
    CONTENT_INVALID = "P002"

    # Blog errors (B001-B099)
    BLOG_CONNECTION = "B001"
    BLOG_TAXONOMY_FAILED = "B002"
    BLOG_PUBLISH_FAILED = "B003"
    BLOG_FAULT = "B004"


class FeedPosterError(Exception):
    """Base exception for all FeedPoster errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedPoster error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the run can carry on past this error
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

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
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v
        for k, v in kwargs.items()
        if k not in ["context", "error_code", "user_message", "recoverable"]
    }


class ConfigurationError(FeedPosterError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs),
        )


class DatabaseError(FeedPosterError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs),
        )


class CheckpointStoreError(DatabaseError):
    """Checkpoint read/write failures. Fatal for the feed being processed."""

    def __init__(self, message: str, feed_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_id:
            context["feed_id"] = feed_id

        super().__init__(
            message,
            context=context,
            user_message=kwargs.pop(
                "user_message", f"Checkpoint store failure: {message}"
            ),
            **kwargs,
        )


class FeedError(FeedPosterError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class FeedFetchError(FeedError):
    """Network, HTTP status or document parsing failure while fetching a feed."""

    pass


class DateParseError(FeedPosterError):
    """A feed item's publish date could not be parsed."""

    def __init__(
        self,
        message: str,
        raw_value: Optional[str] = None,
        item_title: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.get("context", {})
        context["raw_value"] = raw_value
        if item_title:
            context["item_title"] = item_title

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.ITEM_DATE_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Unreadable publish date: {raw_value!r}"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class BlogError(FeedPosterError):
    """Errors talking to the remote blog."""

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        """Initialize blog error.

        Args:
            message: Error message
            endpoint: XML-RPC endpoint that was called
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if endpoint:
            context["endpoint"] = endpoint

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.BLOG_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Blog operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs),
        )


class TaxonomyError(BlogError):
    """Categories or tags could not be fetched from the blog."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.BLOG_TAXONOMY_FAILED)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class PublishError(BlogError):
    """The blog rejected or failed a single post."""

    def __init__(self, message: str, post_title: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if post_title:
            context["post_title"] = post_title
        kwargs.setdefault("error_code", ErrorCode.BLOG_PUBLISH_FAILED)
        super().__init__(message, context=context, **kwargs)


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception.

    Args:
        exception: Exception to get message for

    Returns:
        User-friendly error message
    """
    if isinstance(exception, FeedPosterError):
        return exception.user_message

    return "An unexpected error occurred. Please check the log for details."
