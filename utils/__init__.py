"""
Utilities package for the feed crawler.
"""

from .clean_html import collapse_whitespace, strip_html
from .logging_config import configure_logging
from .time_utils import utc_now, parse_feed_date

__all__ = [
    'collapse_whitespace',
    'strip_html',
    'configure_logging',
    'utc_now',
    'parse_feed_date'
]
