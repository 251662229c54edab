# main.py
"""
Entry point for the distributed feed crawler.

By default runs the worker loop forever. One-shot commands let operators
run a single sweep, reset the shared sweep state, inspect it, or list the
configured sources.
"""
import argparse
import asyncio
import json
import signal
import sys

from loguru import logger

from crawler.core.runtime import CrawlerRuntime, build_runtime
from crawler.health.health_server import start_health_server
from crawler.interfaces import ConfigurationError
from monitoring import init_monitoring
from utils.config.settings import CrawlerSettings
from utils.logging_config import configure_logging


def install_signal_handlers(runtime: CrawlerRuntime) -> None:
    """Stop the worker gracefully on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runtime.worker.stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C still raises KeyboardInterrupt
            pass


async def check_coordinator(runtime: CrawlerRuntime) -> bool:
    if await runtime.coordinator.health_check():
        return True
    logger.error("❌ Work coordination store is unreachable")
    return False


async def run_worker(settings: CrawlerSettings, once: bool = False) -> int:
    metrics = init_monitoring(settings.metrics_dir)
    runtime = build_runtime(settings, metrics)
    try:
        if not await check_coordinator(runtime):
            return 1

        if settings.health_server_enabled:
            start_health_server(settings.port, runtime.worker.status, metrics)

        if once:
            logger.info("🚀 Running a single sweep...")
            stats = await runtime.worker.run_sweep()
            logger.info(f"📊 Sweep stats: {json.dumps(stats.to_dict())}")
        else:
            install_signal_handlers(runtime)
            await runtime.worker.run_forever()
        return 0
    finally:
        await runtime.close()


async def reset_state(settings: CrawlerSettings) -> int:
    runtime = build_runtime(settings)
    try:
        if not await check_coordinator(runtime):
            return 1
        summary = await runtime.coordinator.reset()
        if summary is None:
            logger.warning("⚠️ Coordinator state changed during reset, nothing was reset")
            return 1
        logger.info(f"🔄 Coordinator reset: {json.dumps(summary.to_dict())}")
        return 0
    finally:
        await runtime.close()


async def show_status(settings: CrawlerSettings) -> int:
    runtime = build_runtime(settings)
    try:
        if not await check_coordinator(runtime):
            return 1
        snapshot = await runtime.coordinator.snapshot()
        print(json.dumps(snapshot.to_dict(), indent=2))
        return 0
    finally:
        await runtime.close()


async def list_sources(settings: CrawlerSettings, category: str = None, provider_type: str = None) -> int:
    runtime = build_runtime(settings)
    try:
        if category or provider_type:
            sources = await runtime.catalog.get_sources_filtered(category, provider_type)
        else:
            sources = await runtime.catalog.get_all_sources()
        logger.info(f"📋 {len(sources)} sources available:")
        for source in sources:
            categories = ", ".join(source.categories) or "-"
            logger.info(f"  📡 {source.name}: {source.url} [{categories}] ({source.provider_type or 'unknown'})")
        return 0
    finally:
        await runtime.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Distributed RSS feed crawler")
    commands = parser.add_mutually_exclusive_group()
    commands.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    commands.add_argument("--reset", action="store_true", help="Reset the coordinator state and exit")
    commands.add_argument("--status", action="store_true", help="Print coordinator state and exit")
    commands.add_argument("--list-sources", action="store_true", help="List catalog sources and exit")
    parser.add_argument("--category", help="Filter --list-sources by category")
    parser.add_argument("--provider-type", help="Filter --list-sources by provider type")
    parser.add_argument("--env-file", help="Load environment variables from this file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = CrawlerSettings.from_env(args.env_file)
    configure_logging(settings.log_level, settings.log_file)

    try:
        settings.require_valid()
    except ConfigurationError as e:
        logger.critical(f"💥 Invalid configuration: {e}")
        return 2

    logger.info(f"🔧 Configuration: {settings.describe()}")

    if args.list_sources:
        return asyncio.run(list_sources(settings, args.category, args.provider_type))
    if args.status:
        return asyncio.run(show_status(settings))
    if args.reset:
        return asyncio.run(reset_state(settings))

    if not settings.enabled:
        logger.warning("⚠️ Crawler is disabled (CRAWLER_ENABLED=false), exiting")
        return 0

    try:
        return asyncio.run(run_worker(settings, once=args.once))
    except KeyboardInterrupt:
        logger.info("⚠️ Received interrupt signal. Crawler shut down.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
