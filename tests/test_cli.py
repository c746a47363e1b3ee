"""Tests for the ``harvest`` CLI (typer app in cli/main.py)."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from cli.main import app
from harvester.pipeline import TaskResult
from harvester.scraper.downloader import DownloadError
from harvester.scraper.models import RawPage
from harvester.search.diagnose import SearchDiagnosis

runner = CliRunner()


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

def test_run_prints_summary_and_tree(isolated_settings):
    out = isolated_settings.output_dir
    out.mkdir(parents=True)
    volume = out / "wind_Research_File_1.txt"
    volume.write_text("volume")
    results = [TaskResult(topic="wind", links=["https://a"], documents=1, volumes=[volume])]

    with patch("harvester.pipeline.run_tasks", return_value=results) as mock_run:
        result = runner.invoke(app, ["run", "--task", "wind", "--max-files", "4", "--format", "TXT"])

    assert result.exit_code == 0
    mock_run.assert_called_once_with(["wind"])
    assert isolated_settings.max_files == 4
    assert isolated_settings.output_format == "txt"
    assert "'wind': 1 link(s), 1 document(s)" in result.output
    assert "wind_Research_File_1.txt" in result.output


def test_run_defaults_to_configured_tasks(isolated_settings):
    results = [TaskResult(topic="x", documents=1)]
    with patch("harvester.pipeline.run_tasks", return_value=results) as mock_run:
        result = runner.invoke(app, ["run"])

    assert result.exit_code == 0
    mock_run.assert_called_once_with(None)


def test_run_exits_1_when_nothing_collected(isolated_settings):
    with patch("harvester.pipeline.run_tasks", return_value=[TaskResult(topic="x")]):
        result = runner.invoke(app, ["run", "-t", "x"])

    assert result.exit_code == 1
    assert "Nothing was collected" in result.output


def test_run_rejects_unknown_format(isolated_settings):
    with patch("harvester.pipeline.run_tasks") as mock_run:
        result = runner.invoke(app, ["run", "--format", "docx"])

    assert result.exit_code == 2
    mock_run.assert_not_called()


def test_run_rejects_unknown_mode(isolated_settings):
    with patch("harvester.pipeline.run_tasks") as mock_run:
        result = runner.invoke(app, ["run", "--mode", "mirror"])

    assert result.exit_code == 2
    mock_run.assert_not_called()


def test_run_download_mode_and_output_dir(isolated_settings, tmp_path):
    target = tmp_path / "elsewhere"
    with patch("harvester.pipeline.run_tasks", return_value=[TaskResult(topic="x", downloads=[Path("a")])]):
        result = runner.invoke(app, ["run", "--mode", "download", "--output-dir", str(target)])

    assert result.exit_code == 0
    assert isolated_settings.mode == "download"
    assert isolated_settings.output_dir == target.resolve()


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------

def test_search_prints_links(isolated_settings):
    chain = MagicMock()
    chain.search.return_value = ["https://a.org/x.pdf", "https://b.org/page"]
    with patch("harvester.search.build_chain", return_value=chain):
        result = runner.invoke(app, ["search", "--query", "solar", "--max-results", "5"])

    assert result.exit_code == 0
    chain.search.assert_called_once_with("solar filetype:pdf", max_results=5)
    assert "1. https://a.org/x.pdf" in result.output
    assert "2. https://b.org/page" in result.output


def test_search_pdf_only_and_empty(isolated_settings):
    chain = MagicMock()
    chain.search.return_value = ["https://b.org/page"]
    with patch("harvester.search.build_chain", return_value=chain):
        result = runner.invoke(app, ["search", "--query", "solar", "--pdf-only"])

    assert result.exit_code == 1
    assert "No results" in result.output


def test_search_pdf_only_follows_settings(isolated_settings):
    isolated_settings.pdf_links_only = True
    chain = MagicMock()
    chain.search.return_value = ["https://a.org/x.pdf", "https://b.org/page"]
    with patch("harvester.search.build_chain", return_value=chain):
        result = runner.invoke(app, ["search", "--query", "solar"])

    assert result.exit_code == 0
    assert "https://a.org/x.pdf" in result.output
    assert "https://b.org/page" not in result.output


def test_search_all_links_overrides_settings(isolated_settings):
    isolated_settings.pdf_links_only = True
    chain = MagicMock()
    chain.search.return_value = ["https://b.org/page"]
    with patch("harvester.search.build_chain", return_value=chain):
        result = runner.invoke(app, ["search", "--query", "solar", "--all-links"])

    assert result.exit_code == 0
    assert "https://b.org/page" in result.output


def test_search_rejects_unknown_backend(isolated_settings):
    with patch("harvester.search.build_chain") as mock_build:
        result = runner.invoke(app, ["search", "--query", "solar", "--backend", "htpp"])

    assert result.exit_code == 2
    assert "Unknown backend" in result.output
    mock_build.assert_not_called()


def test_run_rejects_unknown_backend(isolated_settings):
    with patch("harvester.pipeline.run_tasks") as mock_run:
        result = runner.invoke(app, ["run", "--backend", "chrome"])

    assert result.exit_code == 2
    mock_run.assert_not_called()


def test_search_browser_backend(isolated_settings):
    chain = MagicMock()
    chain.search.return_value = ["https://a.org/x.pdf"]
    with patch("harvester.stealth.StealthBrowser") as mock_browser, \
         patch("harvester.search.build_chain", return_value=chain) as mock_build:
        result = runner.invoke(app, ["search", "--query", "solar", "--backend", "browser"])

    assert result.exit_code == 0
    browser = mock_browser.return_value.__enter__.return_value
    mock_build.assert_called_once_with(transport=browser)


# ---------------------------------------------------------------------------
# scrape
# ---------------------------------------------------------------------------

def test_scrape_prints_text():
    raw = RawPage(
        url="https://x.org/",
        html="<html><head><title>Grid</title></head><body><main><p>Batteries balance the grid.</p></main></body></html>",
        status_code=200,
    )
    with patch("harvester.scraper.fetch_url", return_value=raw):
        result = runner.invoke(app, ["scrape", "--url", "https://x.org/"])

    assert result.exit_code == 0
    assert "Title  : Grid" in result.output
    assert "Batteries balance the grid." in result.output


def test_scrape_refuses_pdf():
    raw = RawPage(url="https://x.org/r", html="", status_code=200, content_type="application/pdf")
    with patch("harvester.scraper.fetch_url", return_value=raw):
        result = runner.invoke(app, ["scrape", "--url", "https://x.org/r"])

    assert result.exit_code == 1
    assert "use `download`" in result.output


# ---------------------------------------------------------------------------
# download
# ---------------------------------------------------------------------------

def test_download_saves_file(tmp_path):
    dest = tmp_path / "r.pdf"

    def _fake(url, target, methods=None):
        Path(target).write_bytes(b"%PDF-1.4 body")
        return Path(target)

    with patch("harvester.scraper.downloader.download_pdf", side_effect=_fake) as mock_dl:
        result = runner.invoke(app, ["download", "--url", "https://x.org/r.pdf",
                                     "--dest", str(dest), "-m", "curl", "-m", "http"])

    assert result.exit_code == 0
    assert mock_dl.call_args.kwargs["methods"] == ["curl", "http"]
    assert "Saved" in result.output


def test_download_failure_exits_1(tmp_path):
    error = DownloadError("https://x.org/r.pdf", ["http: HTTP 403"])
    with patch("harvester.scraper.downloader.download_pdf", side_effect=error):
        result = runner.invoke(app, ["download", "--url", "https://x.org/r.pdf",
                                     "--dest", str(tmp_path / "r.pdf")])

    assert result.exit_code == 1
    assert "HTTP 403" in result.output


# ---------------------------------------------------------------------------
# debug-search
# ---------------------------------------------------------------------------

def test_debug_search_reports(tmp_path):
    diagnosis = SearchDiagnosis(
        url="https://duckduckgo.com/?q=x",
        status=200,
        title="x at DuckDuckGo",
        selector_counts={".result__a": 0, '[data-testid="result"]': 10},
        external_links=["https://a.org/1"],
    )
    with patch("harvester.search.diagnose.diagnose_search", return_value=diagnosis) as mock_diag:
        result = runner.invoke(app, ["debug-search", "--query", "x", "--out-dir", str(tmp_path)])

    assert result.exit_code == 0
    mock_diag.assert_called_once_with("x", engine="duckduckgo", out_dir=tmp_path)
    assert "Blocked    : no" in result.output
    assert '[data-testid="result"]: 10 match(es)' in result.output
    assert "1. https://a.org/1" in result.output


def test_debug_search_error_exits_1(tmp_path):
    diagnosis = SearchDiagnosis(url="https://duckduckgo.com/?q=x", error="Timeout 30000ms exceeded")
    with patch("harvester.search.diagnose.diagnose_search", return_value=diagnosis):
        result = runner.invoke(app, ["debug-search", "--out-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "Timeout" in result.output


# ---------------------------------------------------------------------------
# tree
# ---------------------------------------------------------------------------

def test_tree_renders_directory(tmp_path):
    (tmp_path / "solar").mkdir()
    (tmp_path / "solar" / "doc_1.pdf").write_bytes(b"x" * 10)
    result = runner.invoke(app, ["tree", "--path", str(tmp_path)])

    assert result.exit_code == 0
    assert "solar" in result.output
    assert "doc_1.pdf  (10 B)" in result.output


def test_tree_flat(tmp_path):
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / ".hidden.pdf").write_text("h")
    result = runner.invoke(app, ["tree", "--path", str(tmp_path), "--flat"])

    assert result.exit_code == 0
    assert str(tmp_path / "a.txt") in result.output
    assert ".hidden.pdf" not in result.output
