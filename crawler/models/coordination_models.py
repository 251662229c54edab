# crawler/models/coordination_models.py
"""
Records kept by work coordinators: leases, completions and sweep summaries.

The ``to_dict`` forms use the PascalCase field names stored in the shared
coordination store so that records stay readable across deployments.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from utils.time_utils import from_iso, seconds_since, to_iso, utc_now
from .source_models import Source


def _dumps(data: Dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class LeaseRecord:
    """A worker's exclusive claim on a source."""
    source: Source
    worker_id: str
    lease_start_time: datetime = field(default_factory=utc_now)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        return seconds_since(self.lease_start_time, now) or 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Source": self.source.to_dict(),
            "WorkerId": self.worker_id,
            "StartTime": to_iso(self.lease_start_time),
        }

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeaseRecord":
        return cls(
            source=Source.from_dict(data["Source"]),
            worker_id=data.get("WorkerId", ""),
            lease_start_time=from_iso(data.get("StartTime")) or utc_now(),
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "LeaseRecord":
        return cls.from_dict(json.loads(raw))


@dataclass(frozen=True)
class CompletionRecord:
    """A finished source together with the number of articles it produced."""
    source: Source
    worker_id: str
    article_count: int
    completion_time: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Source": self.source.to_dict(),
            "WorkerId": self.worker_id,
            "ArticlesCount": self.article_count,
            "CompletionTime": to_iso(self.completion_time),
        }

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionRecord":
        return cls(
            source=Source.from_dict(data["Source"]),
            worker_id=data.get("WorkerId", ""),
            article_count=int(data.get("ArticlesCount", 0)),
            completion_time=from_iso(data.get("CompletionTime")) or utc_now(),
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "CompletionRecord":
        return cls.from_dict(json.loads(raw))


@dataclass(frozen=True)
class SweepSummary:
    """What a finished sweep accomplished, written when the sweep is reset."""
    run_id: str
    sources_completed: int
    articles_processed: int
    started_at: Optional[datetime]
    completed_at: datetime

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None:
            return None
        return seconds_since(self.started_at, self.completed_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "RunId": self.run_id,
            "CompletedSources": self.sources_completed,
            "ArticlesProcessed": self.articles_processed,
            "StartTime": to_iso(self.started_at) or "",
            "CompletionTime": to_iso(self.completed_at),
        }


@dataclass(frozen=True)
class CoordinatorSnapshot:
    """Point-in-time copy of a coordinator's partitions."""
    pending: Tuple[Source, ...] = ()
    processing: Tuple[LeaseRecord, ...] = ()
    completed: Tuple[CompletionRecord, ...] = ()
    last_reset: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return not self.pending and not self.processing

    @property
    def articles_processed(self) -> int:
        return sum(record.article_count for record in self.completed)

    def counts(self) -> Dict[str, int]:
        return {
            "pending": len(self.pending),
            "processing": len(self.processing),
            "completed": len(self.completed),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.counts(),
            "articles_processed": self.articles_processed,
            "last_reset": to_iso(self.last_reset),
            "leases": [
                {"source": lease.source.name, "url": lease.source.url,
                 "worker_id": lease.worker_id, "age_seconds": round(lease.age_seconds(), 1)}
                for lease in self.processing
            ],
        }
