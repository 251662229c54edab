"""
Extractors for feeds and article pages.
"""

from .rss_extractor import FeedReader
from .article_extractor import ArticleContentExtractor, CONTENT_SELECTORS

__all__ = ['FeedReader', 'ArticleContentExtractor', 'CONTENT_SELECTORS']
