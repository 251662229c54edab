# crawler/coordination/factory.py
"""
Factory for work coordinators.
Backends are looked up in a registry keyed by the COORDINATION_MODE name.
"""
from typing import Callable, Dict, List, Optional

import redis.asyncio as redis
from loguru import logger

from clients.redis_client import create_redis_client
from crawler.interfaces import ConfigurationError, ISourceCatalog, IWorkCoordinator
from utils.config.settings import CrawlerSettings
from .local_coordinator import LocalWorkCoordinator
from .redis_coordinator import RedisWorkCoordinator

CoordinatorBuilder = Callable[[CrawlerSettings, ISourceCatalog, Optional[redis.Redis]], IWorkCoordinator]


def _create_local(settings: CrawlerSettings, catalog: ISourceCatalog,
                  redis_client: Optional[redis.Redis]) -> IWorkCoordinator:
    return LocalWorkCoordinator(catalog)


def _create_redis(settings: CrawlerSettings, catalog: ISourceCatalog,
                  redis_client: Optional[redis.Redis]) -> IWorkCoordinator:
    if redis_client is None:
        redis_client = create_redis_client(settings)
    return RedisWorkCoordinator(redis_client, catalog, key_prefix=settings.redis_key_prefix)


class CoordinatorFactory:
    """Creates the work coordinator selected by configuration."""

    _COORDINATOR_REGISTRY: Dict[str, CoordinatorBuilder] = {
        "local": _create_local,
        "shared-store": _create_redis,
        "redis": _create_redis,
    }

    @classmethod
    def create(cls, settings: CrawlerSettings, catalog: ISourceCatalog,
               redis_client: Optional[redis.Redis] = None) -> IWorkCoordinator:
        mode = (settings.coordination_mode or "").strip().lower()
        builder = cls._COORDINATOR_REGISTRY.get(mode)
        if builder is None:
            raise ConfigurationError(
                f"Unknown coordination mode '{settings.coordination_mode}'. "
                f"Supported modes: {', '.join(cls.get_supported_modes())}"
            )
        coordinator = builder(settings, catalog, redis_client)
        logger.info(f"Using {type(coordinator).__name__} ({mode} coordination)")
        return coordinator

    @classmethod
    def register_coordinator(cls, mode: str, builder: CoordinatorBuilder) -> None:
        """Register a new coordinator backend under ``mode``."""
        cls._COORDINATOR_REGISTRY[mode.strip().lower()] = builder
        logger.info(f"Registered coordinator backend '{mode}'")

    @classmethod
    def get_supported_modes(cls) -> List[str]:
        return list(cls._COORDINATOR_REGISTRY.keys())


def create_coordinator(settings: CrawlerSettings, catalog: ISourceCatalog,
                       redis_client: Optional[redis.Redis] = None) -> IWorkCoordinator:
    """Convenience function to create the configured coordinator."""
    return CoordinatorFactory.create(settings, catalog, redis_client)
