"""HTTP fetcher with optional Playwright fallback for JS-rendered pages."""

from __future__ import annotations

import re

import httpx

from harvester.config import settings
from harvester.scraper.models import RawPage
from harvester.stealth import browser_headers, stealth_context

# ---------------------------------------------------------------------------
# SPA / JS-rendered page detection heuristics
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app)["\']', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]


def _is_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Heuristic: very little visible text relative to total HTML size.
    # Strip <script> and <style> blocks first so their source code doesn't
    # count as visible text, then strip remaining tags.
    no_scripts = re.sub(r"<(script|style)[^>]*>.*?</(script|style)>", "", html, flags=re.IGNORECASE | re.DOTALL)
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    if len(html) > 2000 and len(stripped) < 200:
        return True
    return False


def _fetch_with_playwright(url: str) -> RawPage:
    """Render *url* in a stealth headless browser and return its HTML."""
    with stealth_context(headless=settings.headless) as context:
        page = context.new_page()
        response = page.goto(
            url,
            timeout=int(settings.request_timeout * 1000),
            wait_until="networkidle",
        )
        html = page.content()
        status = response.status if response is not None else 200

    return RawPage(url=url, html=html, status_code=status, content_type="text/html")


def fetch_url(url: str) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    Uses ``httpx`` for standard pages.  Automatically falls back to a headless
    Playwright browser when a JavaScript SPA fingerprint is detected in the
    initial response.  Non-HTML bodies (e.g. a PDF served from a URL without
    a ``.pdf`` suffix) are returned untouched with their ``content_type`` set
    so the caller can route them to the downloader.

    Raises:
        httpx.HTTPStatusError: If the server returns a 4xx/5xx status code.
    """
    with httpx.Client(
        headers=browser_headers(),
        timeout=settings.request_timeout,
        follow_redirects=True,
    ) as client:
        response = client.get(url)
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        if "pdf" in content_type.lower():
            return RawPage(url=url, html="", status_code=response.status_code,
                           content_type=content_type)
        html = response.text
        status_code = response.status_code

    raw = RawPage(url=url, html=html, status_code=status_code, content_type=content_type)

    if _is_spa(raw.html):
        print(f"[fetch] SPA detected, rendering {url} in browser …")
        raw = _fetch_with_playwright(url)

    return raw
