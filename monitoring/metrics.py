"""
Metrics collection and monitoring for the feed crawler.

Tracks per-sweep ("cycle") counters and process-lifetime totals, and writes
a JSON file per finished cycle under ``metrics_dir``.
"""
import copy
import json
import os
import threading
import time
from datetime import datetime
from typing import Any, Dict, Optional

import psutil
from loguru import logger


class CrawlerMetrics:
    """Collects and manages metrics for the crawler system."""

    def __init__(self, metrics_dir: Optional[str] = None):
        """Initialize the metrics collector.

        Args:
            metrics_dir: Directory to store metrics files
        """
        self.metrics_dir = metrics_dir or os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            'data',
            'metrics'
        )
        self._ensure_metrics_dir()
        # The health server reads metrics from its own thread
        self._lock = threading.Lock()

        # In-memory metrics storage
        self.current_cycle_metrics = {}
        self.current_cycle_start = None
        self.current_cycle_id = None

        # Running metrics (reset on application restart)
        self.running_metrics = {
            "app_start_time": datetime.now().isoformat(),
            "cycles_completed": 0,
            "cycles_failed": 0,
            "total_sources_processed": 0,
            "total_sources_failed": 0,
            "total_articles_discovered": 0,
            "total_articles_published": 0,
            "last_cycle_end_time": None,
            "memory_usage_mb": 0
        }

        logger.info(f"Metrics collection initialized. Storing in: {self.metrics_dir}")

    def _ensure_metrics_dir(self):
        """Ensure metrics directories exist."""
        os.makedirs(os.path.join(self.metrics_dir, 'cycles'), exist_ok=True)
        os.makedirs(os.path.join(self.metrics_dir, 'daily'), exist_ok=True)

    def start_cycle(self, cycle_id: Optional[str] = None) -> str:
        """Start tracking a new sweep.

        Args:
            cycle_id: Optional ID for the cycle, or generate timestamp-based ID

        Returns:
            The cycle ID
        """
        if not cycle_id:
            cycle_id = f"cycle_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"

        with self._lock:
            self.current_cycle_id = cycle_id
            self.current_cycle_start = time.monotonic()
            self.current_cycle_metrics = {
                "cycle_id": cycle_id,
                "start_time": datetime.now().isoformat(),
                "status": "running",
                "sources_processed": 0,
                "sources_failed": 0,
                "articles_discovered": 0,
                "articles_published": 0,
                "sources": {},
                "errors": [],
                "duration_seconds": 0
            }

        logger.info(f"Started metrics collection for cycle: {cycle_id}")
        return cycle_id

    def record_source_processed(self, source: str, articles_discovered: int, articles_published: int,
                                success: bool, error: Optional[str] = None):
        """Record the outcome of one source's pipeline.

        Args:
            source: Source name
            articles_discovered: Feed items found
            articles_published: Articles accepted by the publisher
            success: Whether the pipeline completed without a source-level error
            error: Optional error message if failed
        """
        with self._lock:
            self.running_metrics["total_articles_discovered"] += articles_discovered
            self.running_metrics["total_articles_published"] += articles_published
            if success:
                self.running_metrics["total_sources_processed"] += 1
            else:
                self.running_metrics["total_sources_failed"] += 1

            if not self.current_cycle_metrics:
                return

            cycle = self.current_cycle_metrics
            cycle["articles_discovered"] += articles_discovered
            cycle["articles_published"] += articles_published
            cycle["sources"][source] = {
                "discovered": articles_discovered,
                "published": articles_published,
                "success": success
            }
            if success:
                cycle["sources_processed"] += 1
            else:
                cycle["sources_failed"] += 1
                cycle["errors"].append({
                    "type": "source_processing_failed",
                    "severity": "warning",
                    "source": source,
                    "error": error,
                    "timestamp": datetime.now().isoformat()
                })

    def record_cycle_error(self, error_type: str, error_message: str, severity: str = "error"):
        """Record an error that occurred during the cycle.

        Args:
            error_type: Type of error
            error_message: Error message
            severity: Error severity ("info", "warning", "error", "critical")
        """
        with self._lock:
            if self.current_cycle_metrics:
                self.current_cycle_metrics["errors"].append({
                    "type": error_type,
                    "severity": severity,
                    "message": error_message,
                    "timestamp": datetime.now().isoformat()
                })

        if severity == "critical":
            logger.critical(f"METRICS: {error_type} - {error_message}")
        elif severity == "error":
            logger.error(f"METRICS: {error_type} - {error_message}")
        elif severity == "warning":
            logger.warning(f"METRICS: {error_type} - {error_message}")
        else:
            logger.info(f"METRICS: {error_type} - {error_message}")

    def end_cycle(self, success: bool = True):
        """End the current sweep and save its metrics.

        Args:
            success: Whether the cycle completed successfully
        """
        with self._lock:
            if not self.current_cycle_metrics or self.current_cycle_start is None:
                logger.warning("Attempted to end cycle but no cycle was started")
                return

            duration = time.monotonic() - self.current_cycle_start
            cycle = self.current_cycle_metrics
            cycle["duration_seconds"] = round(duration, 2)
            cycle["end_time"] = datetime.now().isoformat()

            if success:
                cycle["status"] = "completed"
                self.running_metrics["cycles_completed"] += 1
            else:
                cycle["status"] = "failed"
                self.running_metrics["cycles_failed"] += 1
            self.running_metrics["last_cycle_end_time"] = cycle["end_time"]

            attempted = cycle["sources_processed"] + cycle["sources_failed"]
            cycle["success_rate"] = round(cycle["sources_processed"] / attempted * 100, 2) if attempted else 100

            finished = cycle
            cycle_id = self.current_cycle_id
            self.current_cycle_id = None
            self.current_cycle_start = None
            self.current_cycle_metrics = {}

        self._save_cycle_metrics(cycle_id, finished)
        logger.info(
            f"Cycle {cycle_id} completed in {duration:.2f}s with "
            f"{finished['sources_processed']}/{attempted} sources and "
            f"{finished['articles_published']} articles published ({finished['success_rate']}% success rate)"
        )

    def update_memory_usage(self, memory_mb: Optional[float] = None) -> float:
        """Update current memory usage.

        Args:
            memory_mb: Memory usage in MB; measured with psutil when omitted

        Returns:
            The recorded value in MB
        """
        if memory_mb is None:
            memory_mb = psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)
        with self._lock:
            self.running_metrics["memory_usage_mb"] = round(memory_mb, 2)
        return memory_mb

    def get_current_metrics(self) -> Dict[str, Any]:
        """Get current running metrics.

        Returns:
            Dictionary of current metrics
        """
        with self._lock:
            metrics = copy.deepcopy(self.running_metrics)
            if self.current_cycle_metrics:
                metrics["current_cycle"] = copy.deepcopy(self.current_cycle_metrics)
        return metrics

    def _save_cycle_metrics(self, cycle_id: str, cycle: Dict[str, Any]):
        """Save finished cycle metrics to file."""
        filepath = os.path.join(self.metrics_dir, 'cycles', f"{cycle_id}.json")
        try:
            with open(filepath, 'w') as f:
                json.dump(cycle, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save cycle metrics: {e}")

    def save_daily_metrics(self):
        """Save daily aggregated metrics."""
        today = datetime.now().strftime('%Y%m%d')
        filepath = os.path.join(self.metrics_dir, 'daily', f"daily_{today}.json")

        daily_metrics = self.get_current_metrics()
        daily_metrics.pop("current_cycle", None)
        daily_metrics["timestamp"] = datetime.now().isoformat()

        try:
            with open(filepath, 'w') as f:
                json.dump(daily_metrics, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save daily metrics: {e}")


# Global metrics instance
_metrics_instance = None


def get_metrics(metrics_dir: Optional[str] = None) -> CrawlerMetrics:
    """Get the singleton metrics instance.

    Args:
        metrics_dir: Directory used when the instance is first created

    Returns:
        CrawlerMetrics instance
    """
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = CrawlerMetrics(metrics_dir)
    return _metrics_instance
