"""
Clients for the services the crawler talks to: the backend API
(source catalog, classifier, article publisher) and Redis.
"""

from .api_client import ApiClient
from .article_publisher import ApiArticlePublisher
from .classifier import ApiCategoryClassifier, SourceHintClassifier
from .source_catalog import ApiSourceCatalog, YamlSourceCatalog

__all__ = [
    'ApiClient',
    'ApiArticlePublisher',
    'ApiCategoryClassifier',
    'SourceHintClassifier',
    'ApiSourceCatalog',
    'YamlSourceCatalog'
]
