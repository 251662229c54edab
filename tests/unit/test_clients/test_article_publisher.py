"""
Unit tests for clients.article_publisher module.
"""
import aiohttp
import pytest

from conftest import FakeResponse, FakeSession
from clients.api_client import ApiClient
from clients.article_publisher import ApiArticlePublisher
from crawler.models import Article


def make_articles(count):
    return [Article(title=f"Story {i}", url=f"https://example.com/{i}", source_name="A",
                    source_url="https://a.example.com/rss") for i in range(count)]


def publisher_with(*responses):
    session = FakeSession(list(responses))
    return ApiArticlePublisher(ApiClient("http://api.test", api_key="secret", session=session)), session


class TestApiArticlePublisher:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publish_batch_uses_success_count(self):
        publisher, session = publisher_with(FakeResponse(200, '{"successCount": 2, "failedCount": 1}'))

        assert await publisher.publish_batch(make_articles(3)) == 2
        call = session.calls[0]
        assert call["url"] == "http://api.test/api/articles/batch"
        assert [item["title"] for item in call["json"]] == ["Story 0", "Story 1", "Story 2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("body, expected", [
        ('{"SuccessCount": 1}', 1),
        ("", 3),
        ('{"status": "ok"}', 3),
        ('{"successCount": 10}', 3),
        ('{"successCount": "many"}', 0),
    ])
    async def test_publish_batch_response_shapes(self, body, expected):
        publisher, _ = publisher_with(FakeResponse(200, body))

        assert await publisher.publish_batch(make_articles(3)) == expected

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publish_batch_failure_counts_zero(self):
        publisher, _ = publisher_with(FakeResponse(500, "error"))

        assert await publisher.publish_batch(make_articles(2)) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_request(self):
        publisher, session = publisher_with()

        assert await publisher.publish_batch([]) == 0
        assert session.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publish_one(self):
        publisher, session = publisher_with(FakeResponse(201, '{"id": 1}'),
                                            aiohttp.ClientConnectionError("refused"))
        article = make_articles(1)[0]

        assert await publisher.publish_one(article) is True
        assert session.calls[0]["url"] == "http://api.test/api/articles"
        assert await publisher.publish_one(article) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_report_stats(self, log_messages):
        publisher, session = publisher_with(FakeResponse(200, ""), FakeResponse(503, "down"))

        await publisher.report_stats("worker-1", 4, 17)
        await publisher.report_stats("worker-1", 1, 1)

        payload = session.calls[0]["json"]
        assert session.calls[0]["url"] == "http://api.test/api/crawlers/stats"
        assert payload["crawlerName"] == "worker-1"
        assert payload["sourcesProcessed"] == 4
        assert payload["articlesProcessed"] == 17
        assert payload["timestamp"]
        assert any("Error reporting crawler stats" in m for m in log_messages)
