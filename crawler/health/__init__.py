"""
Package initialization for crawler health.
"""
from .health_server import build_health_payload, create_health_server, start_health_server

__all__ = [
    'build_health_payload',
    'create_health_server',
    'start_health_server'
]
