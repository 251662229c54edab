# crawler/coordination/redis_coordinator.py
"""
Redis-backed work coordinator shared by crawler processes on many hosts.

Key layout (``prefix`` defaults to ``crawler``)::

    {prefix}:sources:pending      set of source JSON
    {prefix}:sources:processing   set of lease JSON {Source, WorkerId, StartTime}
    {prefix}:sources:completed    set of completion JSON {Source, WorkerId, ArticlesCount, CompletionTime}
    {prefix}:workers:{worker_id}  hash SourcesProcessed / ArticlesProcessed / LastActivity
    {prefix}:last_reset           ISO-8601 time the current sweep was seeded
    {prefix}:runs:{run_id}        hash summarising a finished sweep

Every move of a source between partitions (lease, completion, reclaim,
reset) is a single WATCH/MULTI transaction, so a source is always in
exactly one partition and a reset can never slip in between the two halves
of a move. A transaction that loses a WATCH race rereads and retries.
"""
import uuid
from datetime import datetime
from typing import Dict, List, Optional

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError, WatchError

from crawler.interfaces import CoordinationError, ISourceCatalog, IWorkCoordinator
from crawler.models import (
    CompletionRecord,
    CoordinatorSnapshot,
    LeaseRecord,
    Source,
    SweepSummary,
    unique_sources,
)
from utils.time_utils import from_iso, to_iso, utc_now


class RedisWorkCoordinator(IWorkCoordinator):
    """Coordinator whose state lives in Redis sets."""

    def __init__(self, redis_client: redis.Redis, catalog: ISourceCatalog, key_prefix: str = "crawler"):
        self.redis = redis_client
        self.catalog = catalog
        self.key_prefix = key_prefix.rstrip(":") or "crawler"
        self.pending_key = f"{self.key_prefix}:sources:pending"
        self.processing_key = f"{self.key_prefix}:sources:processing"
        self.completed_key = f"{self.key_prefix}:sources:completed"
        self.last_reset_key = f"{self.key_prefix}:last_reset"

    def worker_key(self, worker_id: str) -> str:
        return f"{self.key_prefix}:workers:{worker_id}"

    def run_key(self, run_id: str) -> str:
        return f"{self.key_prefix}:runs:{run_id}"

    @property
    def _partition_keys(self):
        return (self.pending_key, self.processing_key, self.completed_key)

    async def _has_state(self, client) -> bool:
        for key in self._partition_keys:
            if await client.scard(key):
                return True
        return False

    async def _load_catalog(self) -> List[Source]:
        try:
            sources = await self.catalog.get_all_sources()
        except Exception as e:
            logger.error(f"Failed to load sources from catalog: {e}")
            return []
        return unique_sources(sources or [])

    async def initialize(self) -> None:
        try:
            if await self._has_state(self.redis):
                logger.info("Work coordination state exists, no initialization needed")
                return

            sources = await self._load_catalog()
            if not sources:
                logger.warning("No sources available for crawling")
                return

            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(*self._partition_keys)
                    if await self._has_state(pipe):
                        logger.info("Work coordination state exists, no initialization needed")
                        return
                    pipe.multi()
                    pipe.sadd(self.pending_key, *[source.to_json() for source in sources])
                    pipe.set(self.last_reset_key, to_iso(utc_now()))
                    await pipe.execute()
                except WatchError:
                    logger.info("Another worker initialized work coordination first")
                    return
        except RedisError as e:
            raise CoordinationError(f"Failed to initialize work coordination: {e}", cause=e) from e

        logger.info(f"Initialized work coordination with {len(sources)} sources")

    async def acquire_sources(self, batch_size: int, worker_id: str) -> List[Source]:
        if batch_size <= 0:
            return []

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(self.pending_key)
                        members = await pipe.srandmember(self.pending_key, batch_size)
                        if not members:
                            return []

                        now = utc_now()
                        acquired, leases = [], []
                        for member in members:
                            try:
                                source = Source.from_json(member)
                            except (ValueError, TypeError, KeyError) as e:
                                logger.error(f"Error deserializing source: {member}: {e}")
                                continue
                            acquired.append(source)
                            leases.append(LeaseRecord(source, worker_id, now).to_json())

                        # Undecodable members leave pending without a lease
                        pipe.multi()
                        pipe.srem(self.pending_key, *members)
                        if leases:
                            pipe.sadd(self.processing_key, *leases)
                        await pipe.execute()
                        break
                    except WatchError:
                        logger.debug(f"Pending sources changed while {worker_id} was leasing, retrying")
                        continue
        except RedisError as e:
            raise CoordinationError(f"Failed to acquire sources for {worker_id}: {e}", cause=e) from e

        if acquired:
            logger.info(f"Worker {worker_id} acquired {len(acquired)} sources")
        return acquired

    def _find_lease(self, members, source: Source):
        for member in members:
            try:
                lease = LeaseRecord.from_json(member)
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"Error processing completion for source: {source.url}: {e}")
                continue
            if lease.source.key == source.key:
                return member, lease
        return None, None

    async def report_source_completion(self, source: Source, article_count: int, worker_id: str) -> None:
        article_count = max(article_count, 0)
        now = utc_now()
        record = CompletionRecord(source, worker_id, article_count, now)
        worker_key = self.worker_key(worker_id)

        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(self.processing_key)
                        member, lease = self._find_lease(await pipe.smembers(self.processing_key), source)
                        pipe.multi()
                        if member is not None:
                            pipe.srem(self.processing_key, member)
                        else:
                            # A reclaimed lease may have put the source back in pending
                            pipe.srem(self.pending_key, source.to_json())
                        pipe.sadd(self.completed_key, record.to_json())
                        pipe.hincrby(worker_key, "SourcesProcessed", 1)
                        pipe.hincrby(worker_key, "ArticlesProcessed", article_count)
                        pipe.hset(worker_key, "LastActivity", to_iso(now))
                        await pipe.execute()
                        break
                    except WatchError:
                        logger.debug(f"Leases changed while {worker_id} was completing {source.name}, retrying")
                        continue
        except RedisError as e:
            raise CoordinationError(f"Failed to record completion of {source.name}: {e}",
                                    source_name=source.name, cause=e) from e

        if lease is None:
            logger.warning(f"Worker {worker_id} reported completion for {source.name} without holding a lease")
        elif lease.worker_id != worker_id:
            logger.warning(f"Worker {worker_id} completed {source.name} leased by {lease.worker_id}")
        logger.info(f"Worker {worker_id} completed source {source.name} with {article_count} articles")

    async def is_work_complete(self) -> bool:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.scard(self.pending_key)
                pipe.scard(self.processing_key)
                pending_count, processing_count = await pipe.execute()
        except RedisError as e:
            raise CoordinationError(f"Failed to check work completion: {e}", cause=e) from e
        return pending_count == 0 and processing_count == 0

    def _decode_completions(self, members) -> List[CompletionRecord]:
        records = []
        for member in members:
            try:
                records.append(CompletionRecord.from_json(member))
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"Error deserializing completion record: {member}: {e}")
        return records

    async def reset(self, only_if_complete: bool = False) -> Optional[SweepSummary]:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(*self._partition_keys, self.last_reset_key)
                    pending_count = await pipe.scard(self.pending_key)
                    processing_count = await pipe.scard(self.processing_key)
                    completed = self._decode_completions(await pipe.smembers(self.completed_key))
                    if only_if_complete and (pending_count or processing_count or not completed):
                        return None

                    summary = SweepSummary(
                        run_id=str(uuid.uuid4()),
                        sources_completed=len(completed),
                        articles_processed=sum(record.article_count for record in completed),
                        started_at=from_iso(await pipe.get(self.last_reset_key)),
                        completed_at=utc_now(),
                    )
                    pipe.multi()
                    pipe.hset(self.run_key(summary.run_id), mapping=summary.to_dict())
                    pipe.delete(*self._partition_keys)
                    pipe.set(self.last_reset_key, to_iso(summary.completed_at))
                    await pipe.execute()
                except WatchError:
                    logger.info("Coordination state changed during reset, another worker started the next sweep")
                    return None
        except RedisError as e:
            raise CoordinationError(f"Failed to reset work coordination: {e}", cause=e) from e

        logger.info(f"Reset work coordination after run {summary.run_id}: "
                    f"{summary.sources_completed} sources, {summary.articles_processed} articles")
        await self.initialize()
        return summary

    async def snapshot(self) -> CoordinatorSnapshot:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.smembers(self.pending_key)
                pipe.smembers(self.processing_key)
                pipe.smembers(self.completed_key)
                pipe.get(self.last_reset_key)
                pending_raw, processing_raw, completed_raw, last_reset = await pipe.execute()
        except RedisError as e:
            raise CoordinationError(f"Failed to read coordination state: {e}", cause=e) from e

        pending = []
        for member in pending_raw:
            try:
                pending.append(Source.from_json(member))
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"Error deserializing source: {member}: {e}")
        processing = []
        for member in processing_raw:
            try:
                processing.append(LeaseRecord.from_json(member))
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"Error deserializing lease: {member}: {e}")

        return CoordinatorSnapshot(
            pending=tuple(pending),
            processing=tuple(processing),
            completed=tuple(self._decode_completions(completed_raw)),
            last_reset=from_iso(last_reset),
        )

    async def get_last_reset(self) -> Optional[datetime]:
        try:
            return from_iso(await self.redis.get(self.last_reset_key))
        except RedisError as e:
            raise CoordinationError(f"Failed to read last reset time: {e}", cause=e) from e

    async def _return_to_pending(self, member: str, lease: LeaseRecord) -> bool:
        """Move one lease back to pending. False if it was already completed or reclaimed."""
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(self.processing_key)
                    if not await pipe.sismember(self.processing_key, member):
                        return False
                    pipe.multi()
                    pipe.srem(self.processing_key, member)
                    pipe.sadd(self.pending_key, lease.source.to_json())
                    await pipe.execute()
                    return True
                except WatchError:
                    continue

    async def reclaim_stale_leases(self, max_age_seconds: float) -> int:
        if max_age_seconds <= 0:
            return 0

        now = utc_now()
        reclaimed = 0
        try:
            for member in await self.redis.smembers(self.processing_key):
                try:
                    lease = LeaseRecord.from_json(member)
                except (ValueError, TypeError, KeyError) as e:
                    logger.error(f"Error deserializing lease: {member}: {e}")
                    continue
                if lease.age_seconds(now) < max_age_seconds:
                    continue
                if await self._return_to_pending(member, lease):
                    reclaimed += 1
                    logger.warning(f"Reclaimed stale lease on {lease.source.name} held by {lease.worker_id}")
        except RedisError as e:
            raise CoordinationError(f"Failed to reclaim stale leases: {e}", cause=e) from e
        return reclaimed

    async def get_worker_stats(self, worker_id: str) -> Dict[str, str]:
        """Cumulative counters for one worker across sweeps."""
        try:
            return await self.redis.hgetall(self.worker_key(worker_id))
        except RedisError as e:
            raise CoordinationError(f"Failed to read stats for {worker_id}: {e}", cause=e) from e

    async def get_run_summary(self, run_id: str) -> Dict[str, str]:
        try:
            return await self.redis.hgetall(self.run_key(run_id))
        except RedisError as e:
            raise CoordinationError(f"Failed to read run {run_id}: {e}", cause=e) from e

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            return False

    async def close(self) -> None:
        await self.redis.aclose()
