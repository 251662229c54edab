"""
Publisher that delivers articles and crawl statistics to the backend API.

Failures are logged and mapped to "nothing published"; they never escape
into the crawl.
"""
from typing import List

from loguru import logger

from crawler.interfaces import IArticlePublisher
from crawler.models import Article
from utils.time_utils import to_iso, utc_now
from .api_client import ApiClient


class ApiArticlePublisher(IArticlePublisher):

    def __init__(self, api: ApiClient):
        self.api = api

    async def publish_one(self, article: Article) -> bool:
        try:
            await self.api.post_json("api/articles", article.to_dict())
            return True
        except Exception as e:
            logger.error(f"Error publishing article {article.url}: {e}")
            return False

    async def publish_batch(self, articles: List[Article]) -> int:
        if not articles:
            return 0

        try:
            result = await self.api.post_json("api/articles/batch", [a.to_dict() for a in articles])
        except Exception as e:
            logger.error(f"Error publishing batch of {len(articles)} articles: {e}")
            return 0

        if isinstance(result, dict):
            success = result.get("successCount", result.get("SuccessCount"))
            failed = result.get("failedCount", result.get("FailedCount", 0))
        else:
            success, failed = None, 0
        if success is None:
            # No counts in the response; a 2xx means the batch was accepted
            success = len(articles)

        try:
            success = int(success)
        except (TypeError, ValueError):
            logger.warning(f"Unexpected successCount in batch response: {success!r}")
            return 0
        if failed:
            logger.warning(f"Batch publish: {success} succeeded, {failed} failed")
        return max(0, min(success, len(articles)))

    async def report_stats(self, worker_id: str, sources_processed: int, articles_published: int) -> None:
        payload = {
            "crawlerName": worker_id,
            "sourcesProcessed": sources_processed,
            "articlesProcessed": articles_published,
            "timestamp": to_iso(utc_now()),
        }
        try:
            await self.api.post_json("api/crawlers/stats", payload)
            logger.info(f"Reported stats for {worker_id}: {sources_processed} sources, {articles_published} articles")
        except Exception as e:
            logger.error(f"Error reporting crawler stats: {e}")
