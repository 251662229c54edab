"""
Construction of the asyncio Redis client used for shared-store coordination.
"""
import redis.asyncio as redis
from loguru import logger

from utils.config.settings import CrawlerSettings


def create_redis_client(settings: CrawlerSettings) -> redis.Redis:
    """
    Build a client from REDIS_URL when set, otherwise from the individual
    REDIS_HOST / REDIS_PORT / ... settings. Responses are always decoded.
    """
    if settings.redis_url:
        logger.info("Connecting to Redis using REDIS_URL")
        return redis.Redis.from_url(settings.redis_url, decode_responses=True)

    params = settings.redis_connection_kwargs()
    logger.info(f"Connecting to Redis at {params['host']}:{params['port']} (db {params['db']}, ssl={params['ssl']})")
    return redis.Redis(**params)
