"""
Configuration loading and validation.
"""

from .settings import CrawlerSettings, COORDINATION_MODES, CATALOG_MODES

__all__ = ['CrawlerSettings', 'COORDINATION_MODES', 'CATALOG_MODES']
