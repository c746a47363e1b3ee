"""Tests for harvester.search.diagnose.

The HTML helpers run for real; ``diagnose_search`` gets a fake stealth
context whose page serves canned HTML.
"""

from contextlib import contextmanager
from unittest.mock import MagicMock, patch

from harvester.search.diagnose import (
    KNOWN_SELECTORS,
    count_selectors,
    detect_block,
    diagnose_search,
    external_links,
)

_RESULTS_HTML = """
<html><head><title>solar at DuckDuckGo</title></head><body>
  <article data-testid="result"><a data-testid="result-title-a" href="https://a.org/1.pdf">1</a></article>
  <article data-testid="result"><a data-testid="result-title-a" href="https://b.org/2">2</a></article>
  <a href="https://duckduckgo.com/settings">settings</a>
</body></html>
"""


def _fake_stealth(page):
    context = MagicMock()
    context.new_page.return_value = page

    @contextmanager
    def _ctx(headless=True):
        yield context

    return _ctx


class TestHelpers:
    def test_detect_block(self):
        assert detect_block("Just a moment...")
        assert detect_block("Attention Required! | Cloudflare")
        assert not detect_block("solar at DuckDuckGo")

    def test_count_selectors(self):
        counts = count_selectors(_RESULTS_HTML)
        assert set(counts) == set(KNOWN_SELECTORS)
        assert counts['article[data-testid="result"]'] == 2
        assert counts['a[data-testid="result-title-a"]'] == 2
        assert counts[".result__a"] == 0

    def test_count_custom_selectors(self):
        assert count_selectors(_RESULTS_HTML, ["a"]) == {"a": 3}

    def test_external_links(self):
        assert external_links(_RESULTS_HTML, "duckduckgo.com") == ["https://a.org/1.pdf", "https://b.org/2"]
        assert external_links(_RESULTS_HTML, "duckduckgo.com", limit=1) == ["https://a.org/1.pdf"]


class TestDiagnoseSearch:
    def test_collects_artefacts(self, tmp_path):
        page = MagicMock()
        page.goto.return_value.status = 200
        page.url = "https://duckduckgo.com/?q=solar"
        page.title.return_value = "solar at DuckDuckGo"
        page.content.return_value = _RESULTS_HTML
        page.inner_text.return_value = "  solar   results  "

        with patch("harvester.search.diagnose.stealth_context", _fake_stealth(page)):
            d = diagnose_search("solar", out_dir=tmp_path)

        assert d.url == "https://duckduckgo.com/?q=solar"
        assert d.status == 200
        assert d.blocked is False
        assert d.error is None
        assert d.external_links == ["https://a.org/1.pdf", "https://b.org/2"]
        assert d.body_preview == "solar results"
        assert d.html_path == tmp_path / "duckduckgo_page.html"
        assert d.html_path.read_text(encoding="utf-8") == _RESULTS_HTML
        page.screenshot.assert_called_once()

    def test_named_engine_url(self, tmp_path):
        page = MagicMock()
        page.title.return_value = "Just a moment..."
        page.content.return_value = "<html></html>"
        page.query_selector.return_value = None

        with patch("harvester.search.diagnose.stealth_context", _fake_stealth(page)):
            d = diagnose_search("a b", engine="mojeek", out_dir=tmp_path)

        assert d.url == "https://www.mojeek.com/search?q=a%20b"
        assert d.blocked is True
        assert d.body_preview == ""

    def test_navigation_error_saves_error_state(self, tmp_path):
        page = MagicMock()
        page.goto.side_effect = RuntimeError("net::ERR_TIMED_OUT")
        page.content.return_value = "<html>partial</html>"

        with patch("harvester.search.diagnose.stealth_context", _fake_stealth(page)):
            d = diagnose_search("solar", engine="brave", out_dir=tmp_path)

        assert d.error == "net::ERR_TIMED_OUT"
        assert d.html_path == tmp_path / "brave_error.html"
        assert d.html_path.read_text(encoding="utf-8") == "<html>partial</html>"
