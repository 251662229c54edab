# crawler/models/source_models.py
"""
Data models for crawlable sources and per-source processing results.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlparse


def _pick(data: Dict[str, Any], *names: str) -> Any:
    """Return the first present key, accepting both snake_case and PascalCase payloads."""
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


def _normalize_categories(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    categories = []
    for item in raw:
        if isinstance(item, dict):
            item = _pick(item, "name", "Name")
        if item is None:
            continue
        label = str(item).strip().lower()
        if label and label not in categories:
            categories.append(label)
    return tuple(categories)


@dataclass(frozen=True, eq=False)
class Source:
    """
    A feed source. Identity is the fetch URL: two sources with the same URL
    are the same source even if their display names differ.
    """
    name: str
    url: str
    categories: Tuple[str, ...] = ()
    provider_type: Optional[str] = None

    def __post_init__(self):
        if not self.name or not str(self.name).strip():
            raise ValueError("Source name cannot be empty")
        url = str(self.url or "").strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid source URL: {self.url!r}")

        object.__setattr__(self, "name", str(self.name).strip())
        object.__setattr__(self, "url", url)
        object.__setattr__(self, "categories", _normalize_categories(self.categories))
        provider = self.provider_type.strip() if isinstance(self.provider_type, str) else None
        object.__setattr__(self, "provider_type", provider or None)

    def __eq__(self, other):
        if not isinstance(other, Source):
            return NotImplemented
        return self.url == other.url

    def __hash__(self):
        return hash(self.url)

    @property
    def key(self) -> str:
        return self.url

    @property
    def primary_category(self) -> Optional[str]:
        return self.categories[0] if self.categories else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "categories": list(self.categories),
            "provider_type": self.provider_type,
        }

    def to_json(self) -> str:
        """Canonical JSON form; equal sources always serialize identically."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Source":
        if not isinstance(data, dict):
            raise TypeError(f"Expected a mapping for a source, got {type(data).__name__}")
        return cls(
            name=_pick(data, "name", "Name") or "",
            url=_pick(data, "url", "Url", "rss_url") or "",
            categories=_pick(data, "categories", "Categories", "category") or (),
            provider_type=_pick(data, "provider_type", "providerType", "ProviderType"),
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "Source":
        return cls.from_dict(json.loads(raw))


def unique_sources(sources: Iterable[Source]) -> List[Source]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""
    seen = set()
    unique = []
    for source in sources:
        if source.key in seen:
            continue
        seen.add(source.key)
        unique.append(source)
    return unique


@dataclass
class SourceResult:
    """Outcome of running the fetch-extract-classify-publish pipeline for one source."""
    source: Source
    articles_discovered: int = 0
    articles_built: int = 0
    articles_published: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None
