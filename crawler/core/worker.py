"""
Crawler worker: the acquire → process → report loop.

A worker repeatedly leases batches of sources from the coordinator, runs
each source's pipeline under a concurrency gate and reports the outcome.
Several workers (in one process or on many hosts) can share a coordinator;
the coordinator guarantees no source is processed twice in a sweep.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set, Tuple

from loguru import logger

from crawler.core.source_pipeline import SourcePipeline
from crawler.interfaces import IArticlePublisher, IWorkCoordinator
from crawler.models import Source
from monitoring.metrics import CrawlerMetrics
from utils.config.settings import CrawlerSettings
from utils.time_utils import seconds_since, to_iso, utc_now


class WorkerState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    REPORTING = "reporting"
    STOPPED = "stopped"


@dataclass
class SweepStats:
    """Process-local counters for one sweep."""
    worker_id: str
    sources_processed: int = 0
    sources_failed: int = 0
    articles_published: int = 0
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return seconds_since(self.started_at, self.finished_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "sources_processed": self.sources_processed,
            "sources_failed": self.sources_failed,
            "articles_published": self.articles_published,
            "started_at": to_iso(self.started_at),
            "finished_at": to_iso(self.finished_at),
        }


class CrawlerWorker:
    """Runs sweeps against a shared work coordinator until stopped."""

    def __init__(self, coordinator: IWorkCoordinator, pipeline: SourcePipeline,
                 publisher: IArticlePublisher, settings: CrawlerSettings,
                 metrics: Optional[CrawlerMetrics] = None):
        self.coordinator = coordinator
        self.pipeline = pipeline
        self.publisher = publisher
        self.settings = settings
        self.metrics = metrics
        self.worker_id = settings.server_name
        self.state = WorkerState.IDLE
        self.stats = SweepStats(worker_id=self.worker_id)
        self.sweeps_completed = 0
        self._stop_event = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the worker to stop after in-flight sources finish."""
        if not self.stop_requested:
            logger.info(f"🛑 Stop requested for worker {self.worker_id}")
        self._stop_event.set()

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns True if a stop was requested meanwhile."""
        if self.stop_requested:
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            pass
        return self.stop_requested

    def status(self) -> Dict[str, Any]:
        """Status document served by the health endpoint."""
        return {
            "worker_id": self.worker_id,
            "state": self.state.value,
            "sweeps_completed": self.sweeps_completed,
            "sources_in_flight": len(self._in_flight),
            "current_sweep": self.stats.to_dict(),
        }

    async def run_forever(self) -> None:
        """Run sweeps back to back, pausing ``sweep_interval`` between them, until stopped."""
        logger.info(f"🚀 Crawler worker starting. Worker ID: {self.worker_id}")

        while not self.stop_requested:
            try:
                await self.run_sweep()
            except Exception as e:
                logger.error(f"❌ Error in crawler worker execution: {e}")
                if self.metrics:
                    self.metrics.record_cycle_error("sweep_failed", str(e))

            logger.info(f"💤 Next sweep in {self.settings.sweep_interval_minutes} minutes")
            if await self._wait(self.settings.sweep_interval_seconds):
                break

        self.state = WorkerState.STOPPED
        logger.info(f"Crawler worker {self.worker_id} stopped")

    async def run_sweep(self) -> SweepStats:
        """Run one sweep: initialize (or reset), process until done, report stats."""
        self.stats = SweepStats(worker_id=self.worker_id)
        self.state = WorkerState.INITIALIZING
        if self.metrics:
            self.metrics.start_cycle()

        success = False
        try:
            await self._start_sweep()

            self.state = WorkerState.RUNNING
            await self.process_sources()

            self.state = WorkerState.REPORTING
            await self.publisher.report_stats(self.worker_id, self.stats.sources_processed,
                                              self.stats.articles_published)
            success = True
        finally:
            self.stats.finished_at = utc_now()
            self.state = WorkerState.IDLE
            if self.metrics:
                self.metrics.update_memory_usage()
                self.metrics.end_cycle(success=success)

        self.sweeps_completed += 1
        logger.info(f"✅ Sweep finished for {self.worker_id}: {self.stats.sources_processed} sources, "
                    f"{self.stats.articles_published} articles, {self.stats.sources_failed} failed")
        return self.stats

    async def _start_sweep(self) -> None:
        """
        Start a new sweep when the previous one is finished and old enough,
        otherwise join the current one.
        """
        if self.settings.reset_on_complete and await self.coordinator.is_work_complete():
            age = seconds_since(await self.coordinator.get_last_reset())
            if age is None or age >= self.settings.sweep_interval_seconds:
                summary = await self.coordinator.reset(only_if_complete=True)
                if summary:
                    logger.info(f"🔄 Started new sweep after run {summary.run_id} "
                                f"({summary.sources_completed} sources, {summary.articles_processed} articles)")

        await self.coordinator.initialize()

    async def process_sources(self) -> None:
        """
        Lease and process sources until the sweep is complete or a stop is requested.

        Sources already leased are always processed and reported, even after
        a stop request.
        """
        semaphore = asyncio.Semaphore(self.settings.worker_threads)

        try:
            while not self.stop_requested:
                sources = await self.coordinator.acquire_sources(self.settings.batch_size, self.worker_id)

                if not sources:
                    if await self.coordinator.is_work_complete():
                        logger.info("No more sources to process")
                        break
                    await self._reclaim_stale_leases()
                    if await self._wait(self.settings.poll_interval_seconds):
                        break
                    continue

                for source in sources:
                    await semaphore.acquire()
                    task = asyncio.create_task(self._run_source(source, semaphore))
                    self._in_flight.add(task)
                    task.add_done_callback(self._in_flight.discard)
        finally:
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _reclaim_stale_leases(self) -> None:
        if self.settings.lease_timeout_seconds <= 0:
            return
        reclaimed = await self.coordinator.reclaim_stale_leases(self.settings.lease_timeout_seconds)
        if reclaimed:
            logger.warning(f"Returned {reclaimed} stale leases to pending")

    async def _run_source(self, source: Source, semaphore: asyncio.Semaphore) -> None:
        try:
            published, discovered, error = await self._process_source(source)
            await self._report_completion(source, published)

            self.stats.sources_processed += 1
            self.stats.articles_published += published
            if error is not None:
                self.stats.sources_failed += 1
            if self.metrics:
                self.metrics.record_source_processed(source.name, discovered, published,
                                                     success=error is None, error=error)
        finally:
            semaphore.release()

    async def _process_source(self, source: Source) -> Tuple[int, int, Optional[str]]:
        """Run the pipeline. Returns (published, discovered, error)."""
        try:
            result = await self.pipeline.process(source)
        except Exception as e:
            logger.error(f"❌ Error processing source {source.name}: {e}")
            return 0, 0, str(e) or type(e).__name__
        return result.articles_published, result.articles_discovered, result.error

    async def _report_completion(self, source: Source, published: int) -> None:
        try:
            await self.coordinator.report_source_completion(source, published, self.worker_id)
        except Exception as e:
            # The lease stays in processing; a lease reaper can return it to pending
            logger.error(f"❌ Failed to report completion of {source.name}: {e}")
            if self.metrics:
                self.metrics.record_cycle_error("report_failed", f"{source.name}: {e}")
