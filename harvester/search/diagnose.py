"""Diagnose why an engine returns no links: blocked, or selectors out of date?

``diagnose_search`` loads a result page in a stealth browser and writes a
screenshot plus the raw HTML to the debug directory, then reports which of
the known result selectors still match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List
from urllib.parse import quote

from bs4 import BeautifulSoup

from harvester.config import settings
from harvester.search.engines import ENGINES
from harvester.stealth import stealth_context

KNOWN_SELECTORS = [
    '[data-testid="result"]',
    ".result__a",
    '[data-nir="true"]',
    'article[data-testid="result"]',
    ".react-results--main a",
    ".nrn-react-div a",
    'a[data-testid="result-title-a"]',
    'a[data-testid="result-extras-url-link"]',
    ".result",
    ".web-result",
    "#links .result",
    ".results--main .result",
    '[data-layout="organic"]',
]

_BLOCK_MARKERS = ("cloudflare", "just a moment", "attention required", "captcha")


@dataclass
class SearchDiagnosis:
    url: str
    status: int | None = None
    final_url: str = ""
    title: str = ""
    blocked: bool = False
    selector_counts: Dict[str, int] = field(default_factory=dict)
    external_links: List[str] = field(default_factory=list)
    body_preview: str = ""
    screenshot: Path | None = None
    html_path: Path | None = None
    error: str | None = None


def detect_block(title: str) -> bool:
    """Return ``True`` if the page title looks like a bot-challenge page."""
    lowered = title.lower()
    return any(marker in lowered for marker in _BLOCK_MARKERS)


def count_selectors(html: str, selectors: List[str] | None = None) -> Dict[str, int]:
    soup = BeautifulSoup(html, "html.parser")
    return {sel: len(soup.select(sel)) for sel in selectors or KNOWN_SELECTORS}


def external_links(html: str, exclude: str, limit: int = 20) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    links = [a["href"] for a in soup.select('a[href^="http"]') if exclude not in a["href"]]
    return links[:limit]


def diagnose_search(query: str, engine: str = "duckduckgo", out_dir: Path | None = None) -> SearchDiagnosis:
    """Load *engine*'s result page for *query* and collect diagnostics.

    *engine* is ``duckduckgo`` (the JavaScript front end) or any name from
    :data:`~harvester.search.engines.ENGINES`.
    """
    out_dir = Path(out_dir or settings.debug_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    if engine in ENGINES:
        spec = ENGINES[engine]
        url = spec.build_url(query)
        exclude = spec.exclude[0]
    else:
        url = f"https://duckduckgo.com/?q={quote(query, safe='')}"
        exclude = "duckduckgo.com"

    diagnosis = SearchDiagnosis(url=url)
    print(f"[debug] Navigating to {url}")

    with stealth_context(headless=settings.headless) as context:
        page = context.new_page()
        try:
            response = page.goto(url, wait_until="networkidle", timeout=30_000)
            diagnosis.status = response.status if response is not None else None
            diagnosis.final_url = page.url
            diagnosis.title = page.title()
            diagnosis.blocked = detect_block(diagnosis.title)
            if diagnosis.blocked:
                print("[debug] ⚠ Bot challenge detected, the page is being blocked.")

            page.wait_for_timeout(5000)
            diagnosis.screenshot = out_dir / f"{engine}_screenshot.png"
            page.screenshot(path=str(diagnosis.screenshot), full_page=True)

            html = page.content()
            diagnosis.html_path = out_dir / f"{engine}_page.html"
            diagnosis.html_path.write_text(html, encoding="utf-8")

            diagnosis.selector_counts = count_selectors(html)
            diagnosis.external_links = external_links(html, exclude)
            body = page.inner_text("body") if page.query_selector("body") else ""
            diagnosis.body_preview = " ".join(body.split())[:200]
        except Exception as exc:
            diagnosis.error = str(exc)
            print(f"[debug] ✗ {exc}")
            try:
                diagnosis.html_path = out_dir / f"{engine}_error.html"
                diagnosis.html_path.write_text(page.content(), encoding="utf-8")
                diagnosis.screenshot = out_dir / f"{engine}_error.png"
                page.screenshot(path=str(diagnosis.screenshot))
            except Exception as save_exc:
                print(f"[debug] could not save error state: {save_exc}")

    return diagnosis
