"""
Full-text article extraction.

Downloads an article page and returns the plain text of the first
non-empty element matched by an ordered list of CSS selectors.
"""
from typing import Sequence

from bs4 import BeautifulSoup
from loguru import logger

from crawler.interfaces import ContentExtractionError
from crawler.utils.http_fetcher import HttpFetcher
from utils.clean_html import collapse_whitespace

CONTENT_SELECTORS = (
    'article',
    'div[class*="article-body"]',
    'div[class*="entry-content"]',
    'div[class*="post-content"]',
    'div[class*="content"]',
    'main',
)

NOISE_TAGS = ["script", "style", "noscript", "nav", "aside", "form", "iframe"]


class ArticleContentExtractor:
    """Extracts readable article text from HTML pages."""

    def __init__(self, fetcher: HttpFetcher, selectors: Sequence[str] = CONTENT_SELECTORS):
        self.fetcher = fetcher
        self.selectors = tuple(selectors)

    def extract_from_html(self, html: str) -> str:
        """
        Return the text of the first selector match with content, or "".

        Raises ContentExtractionError when the page cannot be parsed or a
        configured selector is not valid CSS.
        """
        if not html or not html.strip():
            return ""

        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            raise ContentExtractionError(f"Could not parse article HTML: {e}", cause=e) from e
        for tag in soup(NOISE_TAGS):
            tag.decompose()

        for selector in self.selectors:
            try:
                elements = soup.select(selector)
            except Exception as e:
                raise ContentExtractionError(f"Invalid content selector '{selector}': {e}", cause=e) from e
            for element in elements:
                text = collapse_whitespace(element.get_text(separator=" "))
                if text:
                    logger.debug(f"Content matched selector '{selector}' ({len(text)} chars)")
                    return text
        return ""

    async def extract(self, url: str) -> str:
        """
        Fetch ``url`` and extract its article text.

        Any failure is logged and yields "", so callers fall back to the
        feed summary.
        """
        try:
            html = await self.fetcher.get_text(url)
        except Exception as e:
            logger.warning(f"Error fetching full content from {url}: {e}")
            return ""

        try:
            content = self.extract_from_html(html)
        except ContentExtractionError as e:
            logger.warning(f"Error extracting content from {url}: {e}")
            return ""

        if not content:
            logger.debug(f"No content selector matched for {url}")
        return content
