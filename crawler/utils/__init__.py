"""
Utility modules for the crawler package.
"""
from .http_fetcher import HttpFetcher, DEFAULT_USER_AGENT

__all__ = [
    'HttpFetcher',
    'DEFAULT_USER_AGENT'
]
