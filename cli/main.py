"""harvester CLI — entry-point for all harvesting operations.

Usage:
    python cli/main.py --help

Commands:
    run           → harvest, download/scrape and compile volumes for every task
    search        → print the links the search chain harvests for a query
    scrape        → print the clean text of a single URL
    download      → run the PDF download chain for a single URL
    debug-search  → diagnose a blocked or changed search engine
    tree          → print the output directory
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from harvester.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from typing import List, Optional

import typer

from cli.rendering import list_files, render_file_tree
from harvester.config import settings

BACKENDS = ("browser", "http")

app = typer.Typer(
    name="harvest",
    help="Search-engine harvester: links → PDFs/pages → text volumes.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------
@app.command("run")
def run(
    task: Optional[List[str]] = typer.Option(
        None, "--task", "-t", help="Topic to research (repeatable). Defaults to $TASKS."
    ),
    max_files: Optional[int] = typer.Option(None, help="Documents per task (default $MAX_FILES)."),
    output_format: Optional[str] = typer.Option(None, "--format", help="Volume format: pdf | txt."),
    mode: Optional[str] = typer.Option(None, help="compile (volumes) | download (raw PDFs)."),
    backend: Optional[str] = typer.Option(None, help="Search backend: browser | http."),
    output_dir: Optional[Path] = typer.Option(None, help="Output directory (default $OUTPUT_DIR)."),
) -> None:
    """Run every task end-to-end and print the resulting files."""
    from harvester.pipeline import run_tasks

    if max_files is not None:
        settings.max_files = max_files
    if output_format is not None:
        settings.output_format = output_format.lower()
    if mode is not None:
        settings.mode = mode.lower()
    if backend is not None:
        settings.search_backend = backend.lower()
    if output_dir is not None:
        settings.output_dir = output_dir.resolve()

    if settings.output_format not in ("pdf", "txt"):
        typer.echo(f"[run] Unknown format {settings.output_format!r}. Use: pdf | txt")
        raise typer.Exit(2)
    if settings.mode not in ("compile", "download"):
        typer.echo(f"[run] Unknown mode {settings.mode!r}. Use: compile | download")
        raise typer.Exit(2)
    if settings.search_backend not in BACKENDS:
        typer.echo(f"[run] Unknown backend {settings.search_backend!r}. Use: browser | http")
        raise typer.Exit(2)

    results = run_tasks(list(task) if task else None)

    typer.echo("")
    for r in results:
        typer.echo(
            f"[run] {r.topic!r}: {len(r.links)} link(s), {r.documents} document(s), "
            f"{len(r.downloads)} file(s), {len(r.volumes)} volume(s), {r.failures} failure(s)"
        )

    typer.echo("\n[run] Final contents:")
    typer.echo(render_file_tree(settings.output_dir))

    if not any(r.ok for r in results):
        typer.echo("[run] Nothing was collected.")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------
@app.command("search")
def search(
    query: str = typer.Option(..., help="Topic to search for."),
    max_results: Optional[int] = typer.Option(None, help="Links to harvest (default $INPUT_TARGET)."),
    backend: Optional[str] = typer.Option(None, help="Search backend: browser | http."),
    pdf_only: Optional[bool] = typer.Option(
        None, "--pdf-only/--all-links", help="Keep only links ending in .pdf (default $PDF_LINKS_ONLY)."
    ),
) -> None:
    """Harvest result links for a query and print them."""
    from harvester.search import build_chain, build_query, filter_pdf_links
    from harvester.stealth import StealthBrowser

    limit = max_results or settings.harvest_target
    q = build_query(query)
    typer.echo(f"[search] {q!r} …")

    chosen = (backend or settings.search_backend).lower()
    if chosen not in BACKENDS:
        typer.echo(f"[search] Unknown backend {chosen!r}. Use: browser | http")
        raise typer.Exit(2)
    if pdf_only is None:
        pdf_only = settings.pdf_links_only

    if chosen == "browser":
        with StealthBrowser(headless=settings.headless) as browser:
            links = build_chain(transport=browser).search(q, max_results=limit)
    else:
        links = build_chain().search(q, max_results=limit)

    if pdf_only:
        links = filter_pdf_links(links)

    if not links:
        typer.echo(f"[search] No results for {query!r}.")
        raise typer.Exit(1)
    for i, link in enumerate(links, 1):
        typer.echo(f"  {i:>3}. {link}")


# ---------------------------------------------------------------------------
# scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL to scrape."),
) -> None:
    """Scrape a URL and print extracted clean text to stdout."""
    from harvester.scraper import extract_content, fetch_url

    typer.echo(f"[scrape] Fetching {url!r} …")
    raw = fetch_url(url)
    if raw.is_pdf:
        typer.echo("[scrape] URL serves a PDF; use `download` instead.")
        raise typer.Exit(1)
    typer.echo(f"[scrape] HTTP {raw.status_code} — extracting content …")

    clean = extract_content(raw)
    word_count = len(clean.text.split())

    typer.echo(f"[scrape] Title  : {clean.title or '(none)'}")
    typer.echo(f"[scrape] Words  : {word_count}")
    typer.echo(f"[scrape] Links  : {len(clean.links)}")
    typer.echo("")
    typer.echo(clean.text)


# ---------------------------------------------------------------------------
# download
# ---------------------------------------------------------------------------
@app.command("download")
def download(
    url: str = typer.Option(..., help="Link to a PDF."),
    dest: Optional[Path] = typer.Option(None, help="Where to save it (default: name from URL)."),
    method: Optional[List[str]] = typer.Option(
        None, "--method", "-m", help="Download method (repeatable): http | cookies | curl | browser."
    ),
) -> None:
    """Download one PDF through the fallback chain."""
    from harvester.scraper.downloader import DownloadError, download_pdf, pdf_filename_for

    target = dest or Path.cwd() / pdf_filename_for(url)
    typer.echo(f"[download] {url!r} → {target}")
    try:
        path = download_pdf(url, target, methods=list(method) if method else None)
    except DownloadError as exc:
        typer.echo(f"[download] ✗ {exc}")
        raise typer.Exit(1)
    typer.echo(f"[download] Saved {path} ({path.stat().st_size} bytes)")


# ---------------------------------------------------------------------------
# debug-search
# ---------------------------------------------------------------------------
@app.command("debug-search")
def debug_search(
    query: str = typer.Option("a2ad complex filetype:pdf", help="Query to test."),
    engine: str = typer.Option("duckduckgo", help="duckduckgo or an engine name (ddg_html, brave, …)."),
    out_dir: Optional[Path] = typer.Option(None, help="Where to save artefacts (default $DEBUG_DIR)."),
) -> None:
    """Load a search page in the stealth browser and report what it sees."""
    from harvester.search.diagnose import diagnose_search

    d = diagnose_search(query, engine=engine, out_dir=out_dir)

    typer.echo(f"[debug] URL        : {d.url}")
    typer.echo(f"[debug] Status     : {d.status}")
    typer.echo(f"[debug] Final URL  : {d.final_url}")
    typer.echo(f"[debug] Title      : {d.title}")
    typer.echo(f"[debug] Blocked    : {'yes' if d.blocked else 'no'}")
    for sel, count in d.selector_counts.items():
        typer.echo(f"  {'✓' if count else '✗'} {sel}: {count} match(es)")
    typer.echo(f"[debug] External links ({len(d.external_links)}):")
    for i, link in enumerate(d.external_links, 1):
        typer.echo(f"  {i}. {link[:80]}")
    if d.body_preview:
        typer.echo(f"[debug] Body preview: {d.body_preview!r}")
    if d.screenshot:
        typer.echo(f"[debug] Screenshot : {d.screenshot}")
    if d.html_path:
        typer.echo(f"[debug] HTML       : {d.html_path}")
    if d.error:
        typer.echo(f"[debug] Error      : {d.error}")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# tree
# ---------------------------------------------------------------------------
@app.command("tree")
def tree(
    path: Optional[Path] = typer.Option(None, help="Directory to show (default $OUTPUT_DIR)."),
    flat: bool = typer.Option(False, "--flat", help="Print one file path per line instead."),
) -> None:
    """Print the output directory."""
    root = path or settings.output_dir
    if flat:
        for f in list_files(root):
            typer.echo(str(f))
        return
    typer.echo(render_file_tree(root))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
