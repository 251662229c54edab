# crawler/interfaces/__init__.py
"""
Interfaces package for the feed crawler.
Contains the coordinator and service contracts plus the exception hierarchy.
"""

from .exceptions import (
    CrawlerError,
    FeedFetchError,
    FeedParseError,
    ContentExtractionError,
    CoordinationError,
    ConfigurationError,
    ApiError
)

from .coordinator_interface import IWorkCoordinator

from .service_interfaces import (
    ISourceCatalog,
    ICategoryClassifier,
    IArticlePublisher
)

__all__ = [
    # Core interfaces
    'IWorkCoordinator',
    'ISourceCatalog',
    'ICategoryClassifier',
    'IArticlePublisher',

    # Exceptions
    'CrawlerError',
    'FeedFetchError',
    'FeedParseError',
    'ContentExtractionError',
    'CoordinationError',
    'ConfigurationError',
    'ApiError'
]
