"""
Unit tests for crawler.core.source_pipeline module.

The pipeline runs on a real FeedReader and content extractor backed by a
fake HTTP session.
"""
import asyncio
import dataclasses
from datetime import datetime

import pytest
import pytz

from conftest import FakeResponse, FakeSession, make_source
from clients.classifier import SourceHintClassifier
from crawler.core.source_pipeline import SourcePipeline
from crawler.extractors.article_extractor import ArticleContentExtractor
from crawler.extractors.rss_extractor import FeedReader
from crawler.interfaces import ApiError, IArticlePublisher, ICategoryClassifier
from crawler.utils.http_fetcher import HttpFetcher

FEED_URL = "https://a.example.com/feed.xml"


class RecordingPublisher(IArticlePublisher):

    def __init__(self, accepted=None, error=None):
        self.accepted = accepted
        self.error = error
        self.batches = []

    async def publish_one(self, article) -> bool:
        return True

    async def publish_batch(self, articles) -> int:
        self.batches.append(list(articles))
        if self.error:
            raise self.error
        return len(articles) if self.accepted is None else self.accepted

    async def report_stats(self, worker_id, sources_processed, articles_published) -> None:
        pass


class ScriptedClassifier(ICategoryClassifier):

    def __init__(self, label="markets", error=None, delay=0.0):
        self.label = label
        self.error = error
        self.delay = delay
        self.calls = []

    async def classify(self, title, content, source_name, source_category=None) -> str:
        self.calls.append((title, content, source_name, source_category))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.label


@pytest.fixture
def pages(mock_rss_response, mock_html_content):
    return {
        FEED_URL: FakeResponse(200, mock_rss_response),
        "https://example.com/eur-usd-analysis": FakeResponse(200, mock_html_content),
    }


@pytest.fixture
def build_pipeline(test_settings, pages):

    def _build(classifier=None, publisher=None, responses=None, **overrides):
        settings = dataclasses.replace(test_settings, **overrides) if overrides else test_settings
        fetcher = HttpFetcher(settings.http_timeout_seconds, session=FakeSession(responses or pages))
        return SourcePipeline(
            feed_reader=FeedReader(fetcher),
            content_extractor=ArticleContentExtractor(fetcher),
            classifier=classifier or SourceHintClassifier(),
            publisher=publisher or RecordingPublisher(),
            settings=settings,
        )

    return _build


class TestSourcePipeline:
    """Test cases for SourcePipeline."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_process_publishes_valid_items(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(publisher=publisher)

        result = await pipeline.process(make_source("A"))

        assert result.succeeded
        assert result.articles_discovered == 2
        assert result.articles_built == 2
        assert result.articles_published == 2
        (batch,) = publisher.batches
        first, second = batch
        assert first.title == "EUR/USD Analysis: Key Levels to Watch"
        assert first.summary == "Technical analysis of EUR/USD pair."
        assert first.content == first.summary
        assert first.category == "Forex"
        assert first.source_category == "Forex"
        assert first.source_url == FEED_URL
        assert first.published_at == datetime(2024, 1, 15, 12, 0, tzinfo=pytz.utc)
        assert second.source_category == "news"
        assert second.category == "news"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_max_articles_per_source(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(publisher=publisher, max_articles_per_source=1)

        result = await pipeline.process(make_source("A"))

        assert result.articles_discovered == 1
        assert [a.url for a in publisher.batches[0]] == ["https://example.com/eur-usd-analysis"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_failure_aborts_source(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(publisher=publisher, responses={FEED_URL: FakeResponse(503, "down")})

        result = await pipeline.process(make_source("A"))

        assert not result.succeeded
        assert "503" in result.error
        assert result.articles_discovered == 0
        assert publisher.batches == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unparseable_feed_aborts_source(self, build_pipeline):
        pipeline = build_pipeline(responses={FEED_URL: FakeResponse(200, b"<html><body>not a feed")})

        result = await pipeline.process(make_source("A"))

        assert not result.succeeded
        assert result.articles_published == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_feed_does_not_publish(self, build_pipeline):
        empty = b'<?xml version="1.0"?><rss version="2.0"><channel><title>Empty</title></channel></rss>'
        publisher = RecordingPublisher()
        pipeline = build_pipeline(publisher=publisher, responses={FEED_URL: FakeResponse(200, empty)})

        result = await pipeline.process(make_source("A"))

        assert result.succeeded
        assert result.articles_discovered == 0
        assert publisher.batches == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_classifier_error_falls_back(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(ScriptedClassifier(error=ApiError("down", status=500)), publisher)

        result = await pipeline.process(make_source("A"))

        assert result.articles_published == 2
        assert {a.category for a in publisher.batches[0]} == {"uncategorized"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_label_falls_back(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(ScriptedClassifier(label="  "), publisher)

        await pipeline.process(make_source("A"))

        assert {a.category for a in publisher.batches[0]} == {"uncategorized"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_classifier_times_out(self, build_pipeline):
        pipeline = build_pipeline(ScriptedClassifier(delay=1), http_timeout_seconds=0.01)

        label = await pipeline.classify("Title", "Body", "A", None)

        assert label == "uncategorized"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_classifier_receives_context(self, build_pipeline):
        classifier = ScriptedClassifier(label=" Markets ")
        publisher = RecordingPublisher()
        pipeline = build_pipeline(classifier, publisher)

        await pipeline.process(make_source("A"))

        title, content, source_name, source_category = classifier.calls[0]
        assert title == "EUR/USD Analysis: Key Levels to Watch"
        assert content == "Technical analysis of EUR/USD pair."
        assert (source_name, source_category) == ("A", "Forex")
        assert publisher.batches[0][0].category == "Markets"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_content_with_summary_fallback(self, build_pipeline):
        publisher = RecordingPublisher()
        pipeline = build_pipeline(publisher=publisher, fetch_full_content=True)

        await pipeline.process(make_source("A"))

        first, second = publisher.batches[0]
        assert first.content == ("The EUR/USD pair is showing interesting patterns today. "
                                 "Key levels to watch include support at 1.0800.")
        assert first.summary == "Technical analysis of EUR/USD pair."
        # The gold article page is not served, so its body falls back to the summary
        assert second.content == "Gold prices are expected to continue bullish momentum."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publisher_error_counts_nothing(self, build_pipeline):
        pipeline = build_pipeline(publisher=RecordingPublisher(error=RuntimeError("api down")))

        result = await pipeline.process(make_source("A"))

        assert result.succeeded
        assert result.articles_built == 2
        assert result.articles_published == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("accepted, expected", [(5, 2), (-1, 0), (None, 2), (1, 1)])
    async def test_published_count_is_clamped(self, build_pipeline, accepted, expected):
        publisher = RecordingPublisher(accepted=accepted)
        pipeline = build_pipeline(publisher=publisher)

        result = await pipeline.process(make_source("A"))

        assert result.articles_published == expected
