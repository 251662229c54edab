# crawler/coordination/__init__.py
"""
Work coordination backends: in-process and Redis-backed.
"""

from .local_coordinator import LocalWorkCoordinator
from .redis_coordinator import RedisWorkCoordinator
from .factory import CoordinatorFactory, create_coordinator

__all__ = [
    'LocalWorkCoordinator',
    'RedisWorkCoordinator',
    'CoordinatorFactory',
    'create_coordinator'
]
