# crawler/interfaces/service_interfaces.py
"""
Interfaces for the external services a crawl depends on: the source
catalog, the category classifier and the article publisher.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from crawler.models.article_models import Article
from crawler.models.source_models import Source


class ISourceCatalog(ABC):
    """Interface for the provider of crawlable sources."""

    @abstractmethod
    async def get_all_sources(self) -> List[Source]:
        """Return every active source. Failures yield an empty list."""
        pass

    @abstractmethod
    async def get_sources_filtered(self, category: Optional[str] = None,
                                   provider_type: Optional[str] = None,
                                   limit: int = 100) -> List[Source]:
        """Return sources matching the given category and provider type."""
        pass


class ICategoryClassifier(ABC):
    """Interface for assigning a category label to an article."""

    @abstractmethod
    async def classify(self, title: str, content: str, source_name: str,
                       source_category: Optional[str] = None) -> str:
        pass


class IArticlePublisher(ABC):
    """Interface for delivering built articles downstream."""

    @abstractmethod
    async def publish_one(self, article: Article) -> bool:
        pass

    @abstractmethod
    async def publish_batch(self, articles: List[Article]) -> int:
        """Publish ``articles`` and return how many were accepted."""
        pass

    @abstractmethod
    async def report_stats(self, worker_id: str, sources_processed: int, articles_published: int) -> None:
        """Send per-sweep worker statistics. Best effort."""
        pass
