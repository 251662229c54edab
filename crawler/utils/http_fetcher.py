"""
Shared aiohttp fetcher for feeds and article pages.

One ``ClientSession`` is created lazily inside the running loop and reused
for every request until ``close`` is called.
"""
import asyncio
from typing import Optional

import aiohttp
from loguru import logger

from crawler.interfaces import FeedFetchError

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; FeedFleetCrawler/1.0)"


class HttpFetcher:
    """GET-only HTTP client with a fixed timeout and user agent."""

    def __init__(self, timeout_seconds: float = 30, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[aiohttp.ClientSession] = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={'User-Agent': self.user_agent}
            )
            self._owns_session = True
        return self._session

    async def _get(self, url: str, as_text: bool):
        session = await self._get_session()
        try:
            async with session.get(url, timeout=self.timeout) as response:
                if response.status != 200:
                    raise FeedFetchError(f"HTTP {response.status} for {url}", status=response.status)
                if as_text:
                    return await response.text(errors="replace")
                return await response.read()
        except FeedFetchError:
            raise
        except asyncio.TimeoutError as e:
            raise FeedFetchError(f"Timed out fetching {url}", cause=e) from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(f"Error fetching {url}: {e}", cause=e) from e

    async def get_bytes(self, url: str) -> bytes:
        """Fetch ``url`` and return the raw body. Raises FeedFetchError on any failure."""
        logger.debug(f"Fetching {url}")
        return await self._get(url, as_text=False)

    async def get_text(self, url: str) -> str:
        """Fetch ``url`` and return the decoded body. Raises FeedFetchError on any failure."""
        logger.debug(f"Fetching {url}")
        return await self._get(url, as_text=True)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
