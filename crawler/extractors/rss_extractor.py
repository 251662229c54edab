"""
RSS/Atom feed reader.

Downloads a feed with the shared fetcher and turns its entries into
``FeedItem`` objects via feedparser, which copes with RSS 0.9x/1.0/2.0,
Atom and namespaced variants.
"""
from typing import Any, List, Optional

import feedparser
from loguru import logger

from crawler.interfaces import FeedParseError
from crawler.models import FeedItem, Source
from crawler.utils.http_fetcher import HttpFetcher
from utils.time_utils import parse_feed_date


def _entry_category(entry: Any) -> Optional[str]:
    """First category of an entry, if any."""
    tags = entry.get('tags') or []
    for tag in tags:
        term = tag.get('term') if hasattr(tag, 'get') else None
        if term and term.strip():
            return term.strip()
    category = entry.get('category')
    if isinstance(category, str) and category.strip():
        return category.strip()
    return None


class FeedReader:
    """Fetches and parses syndication feeds."""

    def __init__(self, fetcher: HttpFetcher):
        self.fetcher = fetcher

    async def fetch(self, url: str) -> bytes:
        """Download the raw feed document. Raises FeedFetchError."""
        return await self.fetcher.get_bytes(url)

    def parse(self, document: bytes, source: Source, max_items: int) -> List[FeedItem]:
        """
        Parse ``document`` into at most ``max_items`` feed items.

        Entries beyond ``max_items`` are ignored before validation, so a feed
        whose first entries are broken may yield fewer than ``max_items``.
        Entries without a title or link are skipped.
        """
        feed = feedparser.parse(document)
        entries = feed.get('entries') or []

        if feed.get('bozo'):
            problem = feed.get('bozo_exception', 'Unknown error')
            if not entries:
                raise FeedParseError(f"Unable to parse feed {source.url}: {problem}", source_name=source.name)
            logger.warning(f"⚠️ Feed {source.name} has parsing issues: {problem}")

        if not entries:
            logger.warning(f"No items found in feed {source.url}")
            return []

        items = []
        for entry in entries[:max(max_items, 0)]:
            try:
                items.append(FeedItem(
                    title=(entry.get('title') or '').strip(),
                    link=(entry.get('link') or '').strip(),
                    description=entry.get('summary') or entry.get('description') or '',
                    published=parse_feed_date(
                        entry.get('published_parsed') or entry.get('updated_parsed'),
                        entry.get('published') or entry.get('updated')
                    ),
                    category=_entry_category(entry)
                ))
            except ValueError as e:
                logger.debug(f"Skipping feed entry from {source.name}: {e}")
                continue

        logger.info(f"📡 Parsed {len(items)} items from {source.name} ({len(entries)} in feed)")
        return items

    async def read(self, source: Source, max_items: int) -> List[FeedItem]:
        """Fetch and parse the feed of ``source``."""
        logger.info(f"📡 Fetching feed: {source.url}")
        document = await self.fetch(source.url)
        return self.parse(document, source, max_items)
