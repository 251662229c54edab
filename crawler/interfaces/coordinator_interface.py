# crawler/interfaces/coordinator_interface.py
"""
Work coordination interface.

A coordinator hands out exclusive leases on feed sources to crawler workers
and records their completion. Each source is, at any instant, in exactly one
of three partitions: pending, processing (leased) or completed.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from crawler.models.coordination_models import CoordinatorSnapshot, SweepSummary
from crawler.models.source_models import Source


class IWorkCoordinator(ABC):
    """Interface for distributing sources across crawler workers."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Seed the pending partition from the source catalog.

        A no-op when any partition already holds work. A failing or empty
        catalog leaves the state empty so a later call can retry.
        """
        pass

    @abstractmethod
    async def acquire_sources(self, batch_size: int, worker_id: str) -> List[Source]:
        """
        Lease up to ``batch_size`` pending sources to ``worker_id``.

        Returns an empty list when nothing is pending or ``batch_size <= 0``.
        No source is ever leased to two workers at once.
        """
        pass

    @abstractmethod
    async def report_source_completion(self, source: Source, article_count: int, worker_id: str) -> None:
        """Release the lease on ``source`` and record its completion."""
        pass

    @abstractmethod
    async def is_work_complete(self) -> bool:
        """True when nothing is pending and nothing is leased."""
        pass

    @abstractmethod
    async def reset(self, only_if_complete: bool = False) -> Optional[SweepSummary]:
        """
        Archive the finished sweep, clear all partitions and re-seed.

        With ``only_if_complete`` the reset happens only while the sweep is
        finished (no pending, no leased and at least one completion); otherwise
        ``None`` is returned and nothing changes.
        """
        pass

    @abstractmethod
    async def snapshot(self) -> CoordinatorSnapshot:
        """Return a point-in-time copy of all three partitions."""
        pass

    @abstractmethod
    async def get_last_reset(self) -> Optional[datetime]:
        """When the current sweep was seeded, or ``None`` if never."""
        pass

    @abstractmethod
    async def reclaim_stale_leases(self, max_age_seconds: float) -> int:
        """Return leases older than ``max_age_seconds`` to pending. Returns how many moved."""
        pass

    async def health_check(self) -> bool:
        """Check that the coordination store is reachable."""
        return True

    async def close(self) -> None:
        """Release any connections held by the coordinator."""
        pass
