"""
Shared test configuration and fixtures for the feed crawler tests.

This module provides common fixtures, fakes, and sample data used across all test modules.
"""
import os
import sys
import shutil
import tempfile
from typing import Any, Dict, List, Optional, Union

import fakeredis
import pytest
from loguru import logger

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from clients.source_catalog import filter_sources
from crawler.coordination import LocalWorkCoordinator, RedisWorkCoordinator
from crawler.interfaces import ISourceCatalog
from crawler.models import Source
from utils.config.settings import CrawlerSettings


class StaticCatalog(ISourceCatalog):
    """In-memory catalog that can be told to fail."""

    def __init__(self, sources: Optional[List[Source]] = None, error: Optional[Exception] = None):
        self.sources = list(sources or [])
        self.error = error
        self.calls = 0

    async def get_all_sources(self) -> List[Source]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.sources)

    async def get_sources_filtered(self, category=None, provider_type=None, limit=100) -> List[Source]:
        return filter_sources(await self.get_all_sources(), category, provider_type, limit)


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager."""

    def __init__(self, status: int = 200, body: Union[str, bytes] = b""):
        self.status = status
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    async def read(self) -> bytes:
        return self._body

    async def text(self, errors: str = "strict") -> str:
        return self._body.decode("utf-8", errors=errors)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    Stands in for ``aiohttp.ClientSession``.

    ``responses`` is either a dict keyed by URL or a list consumed in order.
    An exception instance in place of a response is raised when requested.
    """

    def __init__(self, responses: Union[Dict[str, Any], List[Any], None] = None):
        self.responses = responses if responses is not None else []
        self.calls = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if isinstance(self.responses, dict):
            response = self.responses.get(url, FakeResponse(404, "not found"))
        elif self.responses:
            response = self.responses.pop(0)
        else:
            response = FakeResponse(200, "")
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str, **kwargs):
        return self.request("GET", url, **kwargs)

    async def close(self):
        self.closed = True


def make_source(name: str, categories=("news",)) -> Source:
    return Source(name=name, url=f"https://{name.lower()}.example.com/feed.xml", categories=tuple(categories))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def sample_sources() -> List[Source]:
    """Three distinct sources: A, B and C."""
    return [make_source("A"), make_source("B", ("markets",)), make_source("C", ())]


@pytest.fixture
def catalog(sample_sources) -> StaticCatalog:
    return StaticCatalog(sample_sources)


@pytest.fixture
def fake_redis():
    """An isolated fake Redis server per test."""
    server = fakeredis.FakeServer()
    return fakeredis.FakeAsyncRedis(server=server, decode_responses=True)


@pytest.fixture(params=["local", "redis"])
def backend(request):
    return request.param


@pytest.fixture
def make_coordinator(backend, fake_redis):
    """Build a coordinator of the parametrized backend over a given catalog."""

    def _make(catalog: ISourceCatalog):
        if backend == "redis":
            return RedisWorkCoordinator(fake_redis, catalog, key_prefix="test")
        return LocalWorkCoordinator(catalog)

    return _make


@pytest.fixture
def test_settings(temp_dir) -> CrawlerSettings:
    """Settings tuned for fast tests."""
    return CrawlerSettings(
        server_name="test-worker",
        coordination_mode="local",
        batch_size=2,
        worker_threads=2,
        sweep_interval_minutes=0,
        poll_interval_seconds=0.01,
        max_articles_per_source=20,
        fetch_full_content=False,
        http_timeout_seconds=5,
        api_endpoint="http://api.test",
        api_key="secret",
        source_catalog="file",
        sources_file=os.path.join(temp_dir, "sources.yaml"),
        metrics_dir=temp_dir,
    )


@pytest.fixture
def mock_rss_response() -> bytes:
    """Mock RSS feed response data."""
    return b"""<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
        <channel>
            <title>Test Financial News</title>
            <description>Test RSS feed for financial news</description>
            <link>https://example.com</link>
            <item>
                <title>EUR/USD Analysis: Key Levels to Watch</title>
                <link>https://example.com/eur-usd-analysis</link>
                <description>&lt;p&gt;Technical analysis of &lt;b&gt;EUR/USD&lt;/b&gt; pair.&lt;/p&gt;</description>
                <pubDate>Mon, 15 Jan 2024 12:00:00 GMT</pubDate>
                <category>Forex</category>
            </item>
            <item>
                <title>Gold Price Forecast: Bullish Momentum Expected</title>
                <link>https://example.com/gold-forecast</link>
                <description>Gold prices are expected to continue bullish momentum.</description>
                <pubDate>Mon, 15 Jan 2024 10:30:00 GMT</pubDate>
            </item>
            <item>
                <title>Item Without A Link</title>
                <description>This item has no link and must be skipped.</description>
            </item>
        </channel>
    </rss>"""


@pytest.fixture
def mock_html_content() -> str:
    """Mock HTML content for full-text extraction tests."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Test Financial Article</title>
        <script>var tracking = true;</script>
    </head>
    <body>
        <nav>Navigation and ads</nav>
        <main>
            <h1>EUR/USD Technical Analysis</h1>
            <div class="article-body">
                <p>The EUR/USD pair is showing interesting patterns today.</p>
                <p>Key levels to watch include   support at 1.0800.</p>
            </div>
        </main>
        <footer>Footer content</footer>
    </body>
    </html>
    """
