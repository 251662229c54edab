# crawler/models/article_models.py
"""
Data models for feed items and the articles built from them.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from utils.time_utils import to_iso, utc_now

FALLBACK_CATEGORY = "uncategorized"


@dataclass(frozen=True)
class FeedItem:
    """One entry from an RSS or Atom feed. Items need both a title and a link."""
    title: str
    link: str
    description: str = ""
    published: datetime = field(default_factory=utc_now)
    category: Optional[str] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("Feed item title cannot be empty")
        if not self.link or not self.link.strip():
            raise ValueError("Feed item link cannot be empty")


@dataclass
class Article:
    """A classified article ready to be published."""
    title: str
    url: str
    source_name: str
    source_url: str
    summary: str = ""
    content: str = ""
    published_at: datetime = field(default_factory=utc_now)
    category: str = FALLBACK_CATEGORY
    source_category: Optional[str] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("Article title cannot be empty")
        if not self.url or not self.url.strip():
            raise ValueError("Article URL cannot be empty")

    @property
    def word_count(self) -> int:
        return len(self.content.split()) if self.content else 0

    def to_dict(self) -> Dict[str, Any]:
        """Payload shape expected by the articles API."""
        return {
            "title": self.title,
            "summary": self.summary,
            "content": self.content,
            "url": self.url,
            "sourceName": self.source_name,
            "sourceUrl": self.source_url,
            "publishedAt": to_iso(self.published_at),
            "category": self.category,
            "sourceCategory": self.source_category,
        }
