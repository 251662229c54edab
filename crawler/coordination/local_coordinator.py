# crawler/coordination/local_coordinator.py
"""
In-process work coordinator.

All state lives in memory behind a single lock, so any number of workers
(asyncio tasks or threads) in one process can share it safely. Nothing
survives a restart.
"""
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from loguru import logger

from crawler.interfaces import ISourceCatalog, IWorkCoordinator
from crawler.models import (
    CompletionRecord,
    CoordinatorSnapshot,
    LeaseRecord,
    Source,
    SweepSummary,
    unique_sources,
)
from utils.time_utils import utc_now


class LocalWorkCoordinator(IWorkCoordinator):
    """Coordinator for a single crawler process."""

    def __init__(self, catalog: ISourceCatalog):
        self.catalog = catalog
        self._lock = threading.Lock()
        self._pending: Deque[Source] = deque()
        self._processing: Dict[str, LeaseRecord] = {}
        self._completed: List[CompletionRecord] = []
        self._last_reset: Optional[datetime] = None

    def _has_state(self) -> bool:
        return bool(self._pending or self._processing or self._completed)

    async def _load_catalog(self) -> List[Source]:
        try:
            sources = await self.catalog.get_all_sources()
        except Exception as e:
            logger.error(f"Failed to load sources from catalog: {e}")
            return []
        return unique_sources(sources or [])

    async def initialize(self) -> None:
        with self._lock:
            if self._has_state():
                logger.info("Work coordination state exists, no initialization needed")
                return

        sources = await self._load_catalog()
        if not sources:
            logger.warning("No sources available for crawling")
            return

        with self._lock:
            # Another worker may have seeded while the catalog was loading
            if self._has_state():
                logger.info("Work coordination state exists, no initialization needed")
                return
            self._pending.extend(sources)
            self._last_reset = utc_now()

        logger.info(f"Initialized work coordination with {len(sources)} sources")

    async def acquire_sources(self, batch_size: int, worker_id: str) -> List[Source]:
        if batch_size <= 0:
            return []

        acquired = []
        now = utc_now()
        with self._lock:
            while len(acquired) < batch_size and self._pending:
                source = self._pending.popleft()
                self._processing[source.key] = LeaseRecord(source, worker_id, now)
                acquired.append(source)

        if acquired:
            logger.info(f"Worker {worker_id} acquired {len(acquired)} sources")
        return acquired

    async def report_source_completion(self, source: Source, article_count: int, worker_id: str) -> None:
        record = CompletionRecord(source, worker_id, max(article_count, 0), utc_now())
        with self._lock:
            lease = self._processing.pop(source.key, None)
            if lease is None:
                # A reclaimed lease may have put the source back in pending
                self._pending = deque(s for s in self._pending if s.key != source.key)
            self._completed.append(record)

        if lease is None:
            logger.warning(f"Worker {worker_id} reported completion for {source.name} without holding a lease")
        elif lease.worker_id != worker_id:
            logger.warning(f"Worker {worker_id} completed {source.name} leased by {lease.worker_id}")
        logger.info(f"Worker {worker_id} completed source {source.name} with {article_count} articles")

    async def is_work_complete(self) -> bool:
        with self._lock:
            return not self._pending and not self._processing

    async def reset(self, only_if_complete: bool = False) -> Optional[SweepSummary]:
        with self._lock:
            if only_if_complete and (self._pending or self._processing or not self._completed):
                return None
            summary = SweepSummary(
                run_id=str(uuid.uuid4()),
                sources_completed=len(self._completed),
                articles_processed=sum(record.article_count for record in self._completed),
                started_at=self._last_reset,
                completed_at=utc_now(),
            )
            self._pending.clear()
            self._processing.clear()
            self._completed.clear()
            self._last_reset = summary.completed_at

        logger.info(f"Reset work coordination after run {summary.run_id}: "
                    f"{summary.sources_completed} sources, {summary.articles_processed} articles")
        await self.initialize()
        return summary

    async def snapshot(self) -> CoordinatorSnapshot:
        with self._lock:
            return CoordinatorSnapshot(
                pending=tuple(self._pending),
                processing=tuple(self._processing.values()),
                completed=tuple(self._completed),
                last_reset=self._last_reset,
            )

    async def get_last_reset(self) -> Optional[datetime]:
        with self._lock:
            return self._last_reset

    async def reclaim_stale_leases(self, max_age_seconds: float) -> int:
        if max_age_seconds <= 0:
            return 0

        now = utc_now()
        reclaimed = []
        with self._lock:
            for key, lease in list(self._processing.items()):
                if lease.age_seconds(now) >= max_age_seconds:
                    del self._processing[key]
                    self._pending.append(lease.source)
                    reclaimed.append(lease)

        for lease in reclaimed:
            logger.warning(f"Reclaimed stale lease on {lease.source.name} held by {lease.worker_id}")
        return len(reclaimed)
