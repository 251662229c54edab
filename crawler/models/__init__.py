# crawler/models/__init__.py
"""
Data models for the feed crawler.
"""

from .source_models import (
    Source,
    SourceResult,
    unique_sources
)

from .coordination_models import (
    LeaseRecord,
    CompletionRecord,
    SweepSummary,
    CoordinatorSnapshot
)

from .article_models import (
    FeedItem,
    Article,
    FALLBACK_CATEGORY
)

__all__ = [
    # Source models
    'Source',
    'SourceResult',
    'unique_sources',

    # Coordination models
    'LeaseRecord',
    'CompletionRecord',
    'SweepSummary',
    'CoordinatorSnapshot',

    # Article models
    'FeedItem',
    'Article',
    'FALLBACK_CATEGORY'
]
