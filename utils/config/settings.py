"""
Runtime settings for the feed crawler.

Settings are read from environment variables, optionally seeded from a
``.env`` file via python-dotenv. Malformed numeric values fall back to their
defaults with a warning; ``validate`` reports values that are present but
unusable.
"""
import os
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger

from crawler.interfaces.exceptions import ConfigurationError

COORDINATION_MODES = ("local", "shared-store", "redis")
CATALOG_MODES = ("api", "file")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"Invalid integer for {name}: '{value}', using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        logger.warning(f"Invalid number for {name}: '{value}', using default {default}")
        return default


def _default_server_name() -> str:
    return f"Crawler-{socket.gethostname()}"


@dataclass
class CrawlerSettings:
    """All tunables for one crawler process."""

    enabled: bool = True
    server_name: str = field(default_factory=_default_server_name)

    # Coordination
    coordination_mode: str = "local"
    batch_size: int = 5
    worker_threads: int = 4
    sweep_interval_minutes: float = 15.0
    poll_interval_seconds: float = 5.0
    lease_timeout_seconds: float = 0.0
    reset_on_complete: bool = True

    # Fetching
    max_articles_per_source: int = 20
    fetch_full_content: bool = True
    http_timeout_seconds: float = 30.0
    user_agent: str = "Mozilla/5.0 (compatible; FeedFleetCrawler/1.0)"

    # Backend API and sources
    api_endpoint: str = "http://localhost:5000"
    api_key: str = ""
    classifier_endpoint: Optional[str] = None
    source_catalog: str = "file"
    sources_file: str = "config/sources.yaml"

    # Shared store
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    redis_use_ssl: bool = False
    redis_username: Optional[str] = None
    redis_key_prefix: str = "crawler"

    # Ops
    log_level: str = "INFO"
    log_file: Optional[str] = None
    health_server_enabled: bool = False
    port: int = 8000
    metrics_dir: str = "metrics"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, load_file: bool = True) -> "CrawlerSettings":
        """Build settings from the environment, loading ``.env`` first unless ``load_file`` is False."""
        if load_file:
            load_dotenv(env_file)

        defaults = cls()
        return cls(
            enabled=_env_bool("CRAWLER_ENABLED", defaults.enabled),
            server_name=_env_str("SERVER_NAME", defaults.server_name),
            coordination_mode=(_env_str("COORDINATION_MODE", defaults.coordination_mode) or "").lower(),
            batch_size=_env_int("BATCH_SIZE", defaults.batch_size),
            worker_threads=_env_int("WORKER_THREADS", defaults.worker_threads),
            sweep_interval_minutes=_env_float("SWEEP_INTERVAL_MINUTES", defaults.sweep_interval_minutes),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds),
            lease_timeout_seconds=_env_float("LEASE_TIMEOUT_SECONDS", defaults.lease_timeout_seconds),
            reset_on_complete=_env_bool("RESET_ON_COMPLETE", defaults.reset_on_complete),
            max_articles_per_source=_env_int("MAX_ARTICLES_PER_SOURCE", defaults.max_articles_per_source),
            fetch_full_content=_env_bool("FETCH_FULL_CONTENT", defaults.fetch_full_content),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            user_agent=_env_str("FEED_USER_AGENT", defaults.user_agent),
            api_endpoint=_env_str("API_ENDPOINT", defaults.api_endpoint),
            api_key=_env_str("API_KEY", defaults.api_key),
            classifier_endpoint=_env_str("CLASSIFIER_ENDPOINT"),
            source_catalog=(_env_str("SOURCE_CATALOG", defaults.source_catalog) or "").lower(),
            sources_file=_env_str("SOURCES_FILE", defaults.sources_file),
            redis_url=_env_str("REDIS_URL"),
            redis_host=_env_str("REDIS_HOST", defaults.redis_host),
            redis_port=_env_int("REDIS_PORT", defaults.redis_port),
            redis_password=_env_str("REDIS_PASSWORD"),
            redis_db=_env_int("REDIS_DB", defaults.redis_db),
            redis_use_ssl=_env_bool("REDIS_USE_SSL", defaults.redis_use_ssl),
            redis_username=_env_str("REDIS_USERNAME"),
            redis_key_prefix=_env_str("REDIS_KEY_PREFIX", defaults.redis_key_prefix),
            log_level=(_env_str("LOG_LEVEL", defaults.log_level) or "INFO").upper(),
            log_file=_env_str("LOG_FILE"),
            health_server_enabled=_env_bool("HEALTH_SERVER_ENABLED", defaults.health_server_enabled),
            port=_env_int("PORT", defaults.port),
            metrics_dir=_env_str("METRICS_DIR", defaults.metrics_dir),
        )

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_minutes * 60

    @property
    def uses_shared_store(self) -> bool:
        return self.coordination_mode in ("shared-store", "redis")

    def validate(self) -> List[str]:
        """Return a list of human-readable problems; empty when the settings are usable."""
        errors = []

        if not self.server_name or not self.server_name.strip():
            errors.append("SERVER_NAME must not be empty")
        if self.coordination_mode not in COORDINATION_MODES:
            errors.append(f"COORDINATION_MODE must be one of {', '.join(COORDINATION_MODES)}, "
                          f"got '{self.coordination_mode}'")
        if self.source_catalog not in CATALOG_MODES:
            errors.append(f"SOURCE_CATALOG must be one of {', '.join(CATALOG_MODES)}, "
                          f"got '{self.source_catalog}'")
        if self.batch_size < 1:
            errors.append(f"BATCH_SIZE must be at least 1, got {self.batch_size}")
        if self.worker_threads < 1:
            errors.append(f"WORKER_THREADS must be at least 1, got {self.worker_threads}")
        if self.max_articles_per_source < 1:
            errors.append(f"MAX_ARTICLES_PER_SOURCE must be at least 1, got {self.max_articles_per_source}")
        if self.sweep_interval_minutes < 0:
            errors.append("SWEEP_INTERVAL_MINUTES must not be negative")
        if self.poll_interval_seconds < 0:
            errors.append("POLL_INTERVAL_SECONDS must not be negative")
        if self.http_timeout_seconds <= 0:
            errors.append("HTTP_TIMEOUT_SECONDS must be positive")
        if self.lease_timeout_seconds < 0:
            errors.append("LEASE_TIMEOUT_SECONDS must not be negative")
        if self.source_catalog == "api" and not self.api_endpoint:
            errors.append("API_ENDPOINT is required when SOURCE_CATALOG=api")
        if self.source_catalog == "file" and not self.sources_file:
            errors.append("SOURCES_FILE is required when SOURCE_CATALOG=file")
        if self.uses_shared_store and not (self.redis_url or self.redis_host):
            errors.append("REDIS_URL or REDIS_HOST is required for shared-store coordination")
        if not 0 < self.port < 65536:
            errors.append(f"PORT must be a valid TCP port, got {self.port}")

        return errors

    def require_valid(self) -> "CrawlerSettings":
        errors = self.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ConfigurationError("; ".join(errors))
        return self

    def redis_connection_kwargs(self) -> Dict[str, Any]:
        """Connection parameters for ``redis.asyncio.Redis`` when no REDIS_URL is set."""
        params = {
            'host': self.redis_host,
            'port': self.redis_port,
            'password': self.redis_password,
            'db': self.redis_db,
            'ssl': self.redis_use_ssl,
            'decode_responses': True
        }

        # Only add username if it's not empty and not a commented-out placeholder
        if self.redis_username and self.redis_username.strip() and self.redis_username.strip() != "#":
            params['username'] = self.redis_username.strip()

        return params

    def describe(self) -> Dict[str, Any]:
        """Settings safe to log: secrets are masked."""
        return {
            "server_name": self.server_name,
            "coordination_mode": self.coordination_mode,
            "batch_size": self.batch_size,
            "worker_threads": self.worker_threads,
            "sweep_interval_minutes": self.sweep_interval_minutes,
            "max_articles_per_source": self.max_articles_per_source,
            "fetch_full_content": self.fetch_full_content,
            "source_catalog": self.source_catalog,
            "api_endpoint": self.api_endpoint,
            "api_key": "***" if self.api_key else "",
            "lease_timeout_seconds": self.lease_timeout_seconds,
        }
