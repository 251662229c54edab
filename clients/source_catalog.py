"""
Source catalogs: the backend API and a local YAML file.

Both return an empty list rather than raising when the catalog cannot be
read, so a broken catalog only means "no work this sweep".
"""
from typing import Any, Iterable, List, Optional

import yaml
from loguru import logger

from crawler.interfaces import ISourceCatalog
from crawler.models import Source
from .api_client import ApiClient


def parse_sources(items: Optional[Iterable[Any]]) -> List[Source]:
    """Build sources from raw records, skipping (and logging) malformed ones."""
    sources = []
    for item in items or []:
        try:
            sources.append(Source.from_dict(item))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Skipping invalid source record {item!r}: {e}")
    return sources


def filter_sources(sources: Iterable[Source], category: Optional[str] = None,
                   provider_type: Optional[str] = None, limit: int = 100) -> List[Source]:
    category = category.strip().lower() if category else None
    provider_type = provider_type.strip().lower() if provider_type else None
    matched = []
    for source in sources:
        if category and category not in source.categories:
            continue
        if provider_type and (source.provider_type or "").lower() != provider_type:
            continue
        matched.append(source)
    return matched[:max(limit, 0)]


class ApiSourceCatalog(ISourceCatalog):
    """Catalog served by ``GET api/sources`` on the backend."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all_sources(self) -> List[Source]:
        try:
            payload = await self.api.get_json("api/sources")
        except Exception as e:
            logger.error(f"Error fetching sources from API: {e}")
            return []
        sources = parse_sources(payload if isinstance(payload, list) else [])
        logger.info(f"Fetched {len(sources)} sources from API")
        return sources

    async def get_sources_filtered(self, category: Optional[str] = None,
                                   provider_type: Optional[str] = None,
                                   limit: int = 100) -> List[Source]:
        params = {"category": category, "providerType": provider_type, "limit": limit}
        try:
            payload = await self.api.get_json("api/sources/filter", params=params)
        except Exception as e:
            logger.error(f"Error fetching filtered sources from API: {e}")
            return []
        return parse_sources(payload if isinstance(payload, list) else [])


class YamlSourceCatalog(ISourceCatalog):
    """
    Catalog read from a YAML file of the form::

        sources:
          - name: Example
            url: https://example.com/feed.xml
            categories: [news]
            provider_type: rss
            enabled: true

    The file is re-read on every call so edits apply to the next sweep.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[Source]:
        try:
            with open(self.path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load sources from {self.path}: {e}")
            return []

        if not isinstance(data, dict) or not data.get('sources'):
            logger.warning(f"No sources found in {self.path}")
            return []

        records = []
        for record in data['sources']:
            if isinstance(record, dict) and record.get('enabled') is False:
                logger.debug(f"Skipping disabled source: {record.get('name')}")
                continue
            records.append(record)
        return parse_sources(records)

    async def get_all_sources(self) -> List[Source]:
        sources = self.load()
        logger.info(f"Loaded {len(sources)} sources from {self.path}")
        return sources

    async def get_sources_filtered(self, category: Optional[str] = None,
                                   provider_type: Optional[str] = None,
                                   limit: int = 100) -> List[Source]:
        return filter_sources(self.load(), category, provider_type, limit)
