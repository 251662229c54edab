"""
Initialize the monitoring system for the feed crawler.
"""
from typing import Optional

from loguru import logger

from monitoring.metrics import CrawlerMetrics, get_metrics


def init_monitoring(metrics_dir: Optional[str] = None) -> CrawlerMetrics:
    """Initialize monitoring components.

    Returns:
        The process-wide CrawlerMetrics instance
    """
    logger.info("Initializing monitoring system...")
    metrics = get_metrics(metrics_dir)
    metrics.update_memory_usage()
    logger.info("Monitoring system initialized successfully")
    return metrics
