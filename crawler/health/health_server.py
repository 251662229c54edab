"""
Health check HTTP server for the feed crawler.

Runs the stdlib ``HTTPServer`` in a daemon thread next to the asyncio worker.
``GET /health`` reports the worker status, ``GET /metrics`` the current
metrics; any other path is a 404.
"""
import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from monitoring.metrics import CrawlerMetrics, get_metrics
from utils.time_utils import to_iso, utc_now

StatusProvider = Callable[[], Dict[str, Any]]


def build_health_payload(status_provider: Optional[StatusProvider]) -> Tuple[int, Dict[str, Any]]:
    """Return (HTTP status, body) for the health endpoint."""
    payload = {
        "status": "healthy",
        "service": "feedfleet-crawler",
        "timestamp": to_iso(utc_now()),
    }
    if status_provider is None:
        return 200, payload
    try:
        payload.update(status_provider())
    except Exception as e:
        logger.error(f"Error building health status: {e}")
        payload.update({"status": "unhealthy", "error": str(e)})
        return 503, payload
    return 200, payload


class HealthHandler(BaseHTTPRequestHandler):
    """HTTP handler for health checks and metrics."""

    status_provider: Optional[StatusProvider] = None
    metrics: Optional[CrawlerMetrics] = None

    def _send_json(self, status: int, body: Dict[str, Any]):
        data = json.dumps(body, default=str).encode()
        self.send_response(status)
        self.send_header('Content-type', 'application/json')
        self.send_header('Content-Length', str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self):
        path = self.path.split('?', 1)[0]

        if path in ['/', '/health']:
            status, body = build_health_payload(type(self).status_provider)
            self._send_json(status, body)

        elif path == '/metrics':
            metrics = type(self).metrics or get_metrics()
            self._send_json(200, metrics.get_current_metrics())

        else:
            self._send_json(404, {"error": "Not Found", "path": self.path})

    def log_message(self, format, *args):
        """Override to use loguru instead of stderr."""
        logger.debug(f"HTTP: {self.address_string()} - {format % args}")


def create_health_server(port: int, status_provider: Optional[StatusProvider] = None,
                         metrics: Optional[CrawlerMetrics] = None,
                         host: str = '0.0.0.0') -> HTTPServer:
    """Bind a health server on ``host:port`` without starting it."""
    handler = type('BoundHealthHandler', (HealthHandler,), {
        'status_provider': staticmethod(status_provider) if status_provider else None,
        'metrics': metrics,
    })
    return HTTPServer((host, port), handler)


def start_health_server(port: int, status_provider: Optional[StatusProvider] = None,
                        metrics: Optional[CrawlerMetrics] = None) -> Optional[HTTPServer]:
    """Start the health server in a daemon thread. Returns None if the port cannot be bound."""
    try:
        server = create_health_server(port, status_provider, metrics)
    except OSError as e:
        logger.error(f"Failed to start health server on port {port}: {e}")
        return None

    thread = threading.Thread(target=server.serve_forever, name="health-server", daemon=True)
    thread.start()
    logger.info(f"🚀 HTTP server started on port {port}")
    logger.info(f"   - Health endpoint: http://localhost:{port}/health")
    logger.info(f"   - Metrics endpoint: http://localhost:{port}/metrics")
    return server
