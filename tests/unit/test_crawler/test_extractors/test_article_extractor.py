"""
Unit tests for crawler.extractors.article_extractor module.
"""
import pytest

from conftest import FakeResponse, FakeSession
from crawler.extractors.article_extractor import ArticleContentExtractor
from crawler.interfaces import ContentExtractionError
from crawler.utils.http_fetcher import HttpFetcher

ARTICLE_URL = "https://example.com/story"


def make_extractor(responses=None, **kwargs) -> ArticleContentExtractor:
    return ArticleContentExtractor(HttpFetcher(session=FakeSession(responses or {})), **kwargs)


class TestArticleContentExtractor:
    """Test cases for ArticleContentExtractor."""

    @pytest.mark.unit
    def test_first_matching_selector_wins(self, mock_html_content):
        text = make_extractor().extract_from_html(mock_html_content)

        assert text == ("The EUR/USD pair is showing interesting patterns today. "
                        "Key levels to watch include support at 1.0800.")

    @pytest.mark.unit
    def test_article_element_preferred(self):
        html = """<html><body>
            <div class="content">Sidebar teaser</div>
            <article><p>Main story text.</p><script>track()</script></article>
        </body></html>"""

        assert make_extractor().extract_from_html(html) == "Main story text."

    @pytest.mark.unit
    def test_empty_match_falls_through_to_next_selector(self):
        html = """<html><body>
            <article>   </article>
            <main><p>Fallback body.</p></main>
        </body></html>"""

        assert make_extractor().extract_from_html(html) == "Fallback body."

    @pytest.mark.unit
    def test_noise_is_removed(self):
        html = "<main><nav>Menu</nav><p>Story</p><style>p{}</style><aside>Ads</aside></main>"

        assert make_extractor().extract_from_html(html) == "Story"

    @pytest.mark.unit
    @pytest.mark.parametrize("html", ["", "   ", "<html><body><p>No container</p></body></html>"])
    def test_no_content(self, html):
        assert make_extractor().extract_from_html(html) == ""

    @pytest.mark.unit
    def test_custom_selectors(self):
        extractor = make_extractor(selectors=["section.story"])

        assert extractor.extract_from_html("<section class='story'>Custom</section><main>Other</main>") == "Custom"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extract_fetches_page(self, mock_html_content):
        extractor = make_extractor({ARTICLE_URL: FakeResponse(200, mock_html_content)})

        assert (await extractor.extract(ARTICLE_URL)).startswith("The EUR/USD pair")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extract_failure_yields_empty(self, log_messages):
        extractor = make_extractor({ARTICLE_URL: FakeResponse(500, "error")})

        assert await extractor.extract(ARTICLE_URL) == ""
        assert any("Error fetching full content" in message for message in log_messages)

    @pytest.mark.unit
    def test_invalid_selector_raises(self):
        extractor = make_extractor(selectors=["div[", "main"])

        with pytest.raises(ContentExtractionError) as exc_info:
            extractor.extract_from_html("<main>Body</main>")
        assert "div[" in str(exc_info.value)
        assert exc_info.value.cause is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extraction_error_yields_empty(self, mock_html_content, log_messages):
        extractor = make_extractor({ARTICLE_URL: FakeResponse(200, mock_html_content)}, selectors=["div["])

        assert await extractor.extract(ARTICLE_URL) == ""
        assert any("Error extracting content" in message for message in log_messages)
