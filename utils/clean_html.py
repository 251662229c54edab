"""
Helpers for turning HTML fragments into plain text.
"""
import re
from typing import Optional

from bs4 import BeautifulSoup
from loguru import logger

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")


def collapse_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_html(html: Optional[str]) -> str:
    """
    Strip markup from an HTML fragment and collapse whitespace.

    Entities are decoded. Empty or whitespace-only input yields "".
    """
    if not html or not html.strip():
        return ""
    if "<" not in html and "&" not in html:
        return collapse_whitespace(html)
    try:
        text = BeautifulSoup(html, "html.parser").get_text(separator=" ")
    except Exception as e:
        # html.parser gives up on some malformed declarations
        logger.warning(f"Falling back to regex tag stripping: {e}")
        text = _TAG_RE.sub(" ", html)
    return collapse_whitespace(text)
