"""
Integration tests for full sweeps.

Several workers share one Redis-backed coordinator and run the real feed
reader, pipeline and API publisher against a fake HTTP session.
"""
import asyncio
import dataclasses
from collections import Counter

import pytest

from conftest import FakeResponse, FakeSession
from clients.api_client import ApiClient
from clients.article_publisher import ApiArticlePublisher
from clients.classifier import ApiCategoryClassifier, SourceHintClassifier
from clients.source_catalog import ApiSourceCatalog, YamlSourceCatalog
from crawler.coordination import LocalWorkCoordinator, RedisWorkCoordinator
from crawler.core.runtime import build_runtime
from crawler.core.source_pipeline import SourcePipeline
from crawler.core.worker import CrawlerWorker
from crawler.extractors.article_extractor import ArticleContentExtractor
from crawler.extractors.rss_extractor import FeedReader
from crawler.utils.http_fetcher import HttpFetcher
from main import parse_args

FEED_TEMPLATE = """<?xml version="1.0"?><rss version="2.0"><channel><title>{name}</title>{items}</channel></rss>"""
ITEM_TEMPLATE = "<item><title>{name} story {i}</title><link>https://{host}/story-{i}</link>" \
                "<description>Story {i}</description></item>"

SOURCES = {"alpha": 3, "beta": 0, "gamma": 2, "delta": 1}


def write_sources_file(path):
    lines = ["sources:"]
    for name in SOURCES:
        lines += [f"  - name: {name}", f"    url: https://{name}.example.com/rss", "    categories: [news]"]
    lines += ["  - name: retired", "    url: https://retired.example.com/rss", "    enabled: false"]
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def feed_responses():
    responses = {}
    for name, count in SOURCES.items():
        host = f"{name}.example.com"
        items = "".join(ITEM_TEMPLATE.format(name=name, host=host, i=i) for i in range(count))
        responses[f"https://{host}/rss"] = FakeResponse(200, FEED_TEMPLATE.format(name=name, items=items))
    return responses


class ApiSession(FakeSession):
    """Accepts every POST and records the payloads."""

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if url.endswith("api/articles/batch"):
            return FakeResponse(200, f'{{"successCount": {len(kwargs["json"])}}}')
        return FakeResponse(200, "")


@pytest.fixture
def sweep_settings(test_settings):
    write_sources_file(test_settings.sources_file)
    return dataclasses.replace(test_settings, coordination_mode="shared-store", worker_threads=2, batch_size=1)


def build_worker(settings, coordinator, api_session, worker_id):
    settings = dataclasses.replace(settings, server_name=worker_id)
    fetcher = HttpFetcher(session=FakeSession(feed_responses()))
    publisher = ApiArticlePublisher(ApiClient(settings.api_endpoint, settings.api_key, session=api_session))
    pipeline = SourcePipeline(FeedReader(fetcher), ArticleContentExtractor(fetcher), SourceHintClassifier(),
                              publisher, settings)
    return CrawlerWorker(coordinator, pipeline, publisher, settings)


class TestSweepIntegration:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_three_workers_complete_one_sweep(self, sweep_settings, fake_redis):
        # A long interval keeps late-starting workers from resetting the finished sweep
        sweep_settings = dataclasses.replace(sweep_settings, sweep_interval_minutes=60)
        catalog = YamlSourceCatalog(sweep_settings.sources_file)
        api_session = ApiSession()
        workers = []
        for i in range(3):
            coordinator = RedisWorkCoordinator(fake_redis, catalog, key_prefix="fleet")
            workers.append(build_worker(sweep_settings, coordinator, api_session, f"worker-{i}"))

        await asyncio.gather(*(worker.run_sweep() for worker in workers))

        published = [article["url"] for call in api_session.calls
                     if call["url"].endswith("api/articles/batch") for article in call["json"]]
        assert len(published) == sum(SOURCES.values())
        assert len(set(published)) == len(published)

        snapshot = await workers[0].coordinator.snapshot()
        assert snapshot.is_complete
        counts = {record.source.name: record.article_count for record in snapshot.completed}
        assert counts == SOURCES
        assert Counter(record.source.url for record in snapshot.completed).most_common(1)[0][1] == 1

        stats_calls = [call for call in api_session.calls if call["url"].endswith("api/crawlers/stats")]
        assert len(stats_calls) == 3
        assert sum(call["json"]["sourcesProcessed"] for call in stats_calls) == 4

        total = 0
        for worker in workers:
            stats = await worker.coordinator.get_worker_stats(worker.worker_id)
            total += int(stats.get("ArticlesProcessed", 0))
        assert total == sum(SOURCES.values())

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_consecutive_sweeps_are_recorded(self, sweep_settings, fake_redis):
        catalog = YamlSourceCatalog(sweep_settings.sources_file)
        coordinator = RedisWorkCoordinator(fake_redis, catalog, key_prefix="fleet")
        worker = build_worker(sweep_settings, coordinator, ApiSession(), "worker-0")

        await worker.run_sweep()
        await worker.run_sweep()

        run_keys = [key async for key in fake_redis.scan_iter("fleet:runs:*")]
        assert len(run_keys) == 1
        summary = await fake_redis.hgetall(run_keys[0])
        assert summary["CompletedSources"] == "4"
        assert summary["ArticlesProcessed"] == str(sum(SOURCES.values()))
        assert worker.stats.sources_processed == 4


class TestRuntimeWiring:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_build_runtime_local_file(self, test_settings):
        runtime = build_runtime(test_settings)
        try:
            assert isinstance(runtime.coordinator, LocalWorkCoordinator)
            assert isinstance(runtime.catalog, YamlSourceCatalog)
            assert isinstance(runtime.worker.pipeline.classifier, SourceHintClassifier)
            assert runtime.worker.worker_id == "test-worker"
        finally:
            await runtime.close()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_build_runtime_shared_store_api(self, test_settings, fake_redis):
        settings = dataclasses.replace(test_settings, coordination_mode="shared-store", source_catalog="api",
                                       classifier_endpoint="http://classifier.test")
        runtime = build_runtime(settings, redis_client=fake_redis)
        try:
            assert isinstance(runtime.coordinator, RedisWorkCoordinator)
            assert isinstance(runtime.catalog, ApiSourceCatalog)
            assert isinstance(runtime.worker.pipeline.classifier, ApiCategoryClassifier)
            assert runtime.classifier_api is not None
        finally:
            await runtime.close()

    @pytest.mark.integration
    def test_cli_commands_are_exclusive(self):
        assert parse_args(["--once"]).once
        assert parse_args(["--list-sources", "--category", "news"]).category == "news"
        with pytest.raises(SystemExit):
            parse_args(["--once", "--reset"])
