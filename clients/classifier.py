"""
Category classifiers.
"""
from typing import Optional

from loguru import logger

from crawler.interfaces import ApiError, ICategoryClassifier
from crawler.models import FALLBACK_CATEGORY
from .api_client import ApiClient

MAX_CLASSIFIER_CONTENT = 4000


class ApiCategoryClassifier(ICategoryClassifier):
    """
    Classifier backed by ``POST api/categories/classify``.

    Errors propagate; the pipeline substitutes the fallback category.
    """

    def __init__(self, api: ApiClient, path: str = "api/categories/classify"):
        self.api = api
        self.path = path

    async def classify(self, title: str, content: str, source_name: str,
                       source_category: Optional[str] = None) -> str:
        payload = {
            "title": title,
            "content": (content or "")[:MAX_CLASSIFIER_CONTENT],
            "sourceName": source_name,
            "sourceCategory": source_category,
        }
        result = await self.api.post_json(self.path, payload)
        if isinstance(result, str):
            label = result
        elif isinstance(result, dict):
            label = result.get("category") or result.get("Category") or ""
        else:
            label = ""
        if not label.strip():
            raise ApiError(f"Classifier returned no category for '{title}'")
        logger.debug(f"Classified '{title}' as {label}")
        return label.strip()


class SourceHintClassifier(ICategoryClassifier):
    """Uses the feed or source category as the label. Never calls out."""

    async def classify(self, title: str, content: str, source_name: str,
                       source_category: Optional[str] = None) -> str:
        if source_category and source_category.strip():
            return source_category.strip()
        return FALLBACK_CATEGORY
