"""
Per-source crawl pipeline: fetch → parse → extract → classify → publish.

A failure while fetching or parsing a feed aborts only that source; a
failure on one item skips only that item.
"""
import asyncio
import time
from typing import List, Optional

from loguru import logger

from crawler.extractors.article_extractor import ArticleContentExtractor
from crawler.extractors.rss_extractor import FeedReader
from crawler.interfaces import IArticlePublisher, ICategoryClassifier
from crawler.models import FALLBACK_CATEGORY, Article, FeedItem, Source, SourceResult
from utils.clean_html import strip_html
from utils.config.settings import CrawlerSettings


class SourcePipeline:
    """Turns one source's feed into published articles."""

    def __init__(self, feed_reader: FeedReader, content_extractor: ArticleContentExtractor,
                 classifier: ICategoryClassifier, publisher: IArticlePublisher,
                 settings: CrawlerSettings):
        self.feed_reader = feed_reader
        self.content_extractor = content_extractor
        self.classifier = classifier
        self.publisher = publisher
        self.settings = settings

    async def process(self, source: Source) -> SourceResult:
        """Run the whole pipeline for ``source``. Never raises."""
        start_time = time.monotonic()
        result = SourceResult(source=source)
        logger.info(f"Processing source: {source.name}")

        try:
            items = await self.feed_reader.read(source, self.settings.max_articles_per_source)
        except Exception as e:
            logger.error(f"❌ Error fetching feed for {source.name}: {e}")
            result.error = str(e) or type(e).__name__
            result.duration_seconds = time.monotonic() - start_time
            return result

        result.articles_discovered = len(items)
        articles = await self.build_articles(source, items)
        result.articles_built = len(articles)

        if articles:
            result.articles_published = await self.publish(articles)

        result.duration_seconds = time.monotonic() - start_time
        logger.info(f"✅ Processed {source.name}: {result.articles_published}/{result.articles_built} "
                    f"articles published in {result.duration_seconds:.2f}s")
        return result

    async def build_articles(self, source: Source, items: List[FeedItem]) -> List[Article]:
        articles = []
        for item in items:
            try:
                articles.append(await self.build_article(source, item))
            except Exception as e:
                logger.warning(f"Error processing item '{item.title}' from {source.name}: {e}")
        return articles

    async def build_article(self, source: Source, item: FeedItem) -> Article:
        summary = strip_html(item.description)

        content = ""
        if self.settings.fetch_full_content:
            content = await self.content_extractor.extract(item.link)
        body = content or summary

        source_category = item.category or source.primary_category
        category = await self.classify(item.title, body, source.name, source_category)

        return Article(
            title=item.title,
            url=item.link,
            source_name=source.name,
            source_url=source.url,
            summary=summary,
            content=body,
            published_at=item.published,
            category=category,
            source_category=source_category,
        )

    async def classify(self, title: str, content: str, source_name: str,
                       source_category: Optional[str]) -> str:
        """Classify an article, falling back to ``uncategorized`` on any error or empty label."""
        try:
            label = await asyncio.wait_for(
                self.classifier.classify(title, content, source_name, source_category),
                timeout=self.settings.http_timeout_seconds
            )
        except Exception as e:
            logger.warning(f"Error classifying article '{title}': {e}")
            return FALLBACK_CATEGORY

        if not label or not str(label).strip():
            return FALLBACK_CATEGORY
        return str(label).strip()

    async def publish(self, articles: List[Article]) -> int:
        try:
            published = await self.publisher.publish_batch(articles)
        except Exception as e:
            logger.error(f"Error publishing {len(articles)} articles: {e}")
            return 0
        return max(0, min(int(published or 0), len(articles)))
