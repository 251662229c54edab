"""
Wiring of the crawler's components from settings.
"""
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
from loguru import logger

from clients.api_client import ApiClient
from clients.article_publisher import ApiArticlePublisher
from clients.classifier import ApiCategoryClassifier, SourceHintClassifier
from clients.source_catalog import ApiSourceCatalog, YamlSourceCatalog
from crawler.coordination.factory import create_coordinator
from crawler.core.source_pipeline import SourcePipeline
from crawler.core.worker import CrawlerWorker
from crawler.extractors.article_extractor import ArticleContentExtractor
from crawler.extractors.rss_extractor import FeedReader
from crawler.interfaces import ICategoryClassifier, ISourceCatalog, IWorkCoordinator
from crawler.utils.http_fetcher import HttpFetcher
from monitoring.metrics import CrawlerMetrics
from utils.config.settings import CrawlerSettings


@dataclass
class CrawlerRuntime:
    """Everything one crawler process needs, plus the resources to release on shutdown."""
    settings: CrawlerSettings
    api: ApiClient
    fetcher: HttpFetcher
    catalog: ISourceCatalog
    coordinator: IWorkCoordinator
    worker: CrawlerWorker
    classifier_api: Optional[ApiClient] = None

    async def close(self) -> None:
        await self.fetcher.close()
        await self.api.close()
        if self.classifier_api is not None:
            await self.classifier_api.close()
        await self.coordinator.close()
        logger.info("Crawler resources released")


def build_catalog(settings: CrawlerSettings, api: ApiClient) -> ISourceCatalog:
    if settings.source_catalog == "api":
        return ApiSourceCatalog(api)
    return YamlSourceCatalog(settings.sources_file)


def build_classifier(settings: CrawlerSettings) -> ICategoryClassifier:
    if settings.classifier_endpoint:
        api = ApiClient(settings.classifier_endpoint, settings.api_key, settings.http_timeout_seconds)
        return ApiCategoryClassifier(api)
    logger.info("No CLASSIFIER_ENDPOINT configured, using source category hints")
    return SourceHintClassifier()


def build_runtime(settings: CrawlerSettings, metrics: Optional[CrawlerMetrics] = None,
                  redis_client: Optional[redis.Redis] = None) -> CrawlerRuntime:
    """Assemble the worker and its collaborators. Connections open lazily on first use."""
    api = ApiClient(settings.api_endpoint, settings.api_key, settings.http_timeout_seconds)
    fetcher = HttpFetcher(settings.http_timeout_seconds, settings.user_agent)

    catalog = build_catalog(settings, api)
    classifier = build_classifier(settings)
    publisher = ApiArticlePublisher(api)
    pipeline = SourcePipeline(
        feed_reader=FeedReader(fetcher),
        content_extractor=ArticleContentExtractor(fetcher),
        classifier=classifier,
        publisher=publisher,
        settings=settings,
    )
    coordinator = create_coordinator(settings, catalog, redis_client)
    worker = CrawlerWorker(coordinator, pipeline, publisher, settings, metrics)

    classifier_api = classifier.api if isinstance(classifier, ApiCategoryClassifier) else None
    return CrawlerRuntime(settings, api, fetcher, catalog, coordinator, worker, classifier_api)
