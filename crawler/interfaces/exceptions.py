# crawler/interfaces/exceptions.py
"""
Exception hierarchy for the feed crawler.

Every crawler error carries the name of the source it concerns (when there
is one) and the underlying exception that caused it.
"""

from typing import Optional


class CrawlerError(Exception):
    """Base exception for crawler operations."""

    def __init__(self, message: str, source_name: str = "", cause: Optional[Exception] = None):
        super().__init__(message)
        self.source_name = source_name
        self.cause = cause


class FeedFetchError(CrawlerError):
    """Raised when a feed or article page cannot be downloaded."""

    def __init__(self, message: str, source_name: str = "", cause: Optional[Exception] = None,
                 status: Optional[int] = None):
        super().__init__(message, source_name, cause)
        self.status = status


class FeedParseError(CrawlerError):
    """Raised when a downloaded feed document cannot be parsed."""
    pass


class ContentExtractionError(CrawlerError):
    """Raised when full article content cannot be extracted."""
    pass


class CoordinationError(CrawlerError):
    """Raised when the shared coordination store misbehaves."""
    pass


class ConfigurationError(CrawlerError):
    """Raised for invalid or missing configuration."""
    pass


class ApiError(CrawlerError):
    """Raised when the backend API answers with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body
