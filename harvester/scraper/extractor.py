"""Content extraction: turns a :class:`RawPage` into a :class:`CleanPage`."""

from __future__ import annotations

import re
from typing import List

import trafilatura

from harvester.scraper.models import CleanPage, RawPage

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_MANY_NEWLINES = re.compile(r"\n{3,}")
_INLINE_SPACE = re.compile(r"[ \t]+")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _extract_title(html: str) -> str:
    """Return the text content of the first ``<title>`` tag, or empty string."""
    match = re.search(r"<title[^>]*>([^<]+)</title>", html, re.IGNORECASE)
    if match:
        return match.group(1).strip()
    return ""


def _extract_links(html: str) -> List[str]:
    """Return a deduplicated list of href values from ``<a>`` tags.

    Fragment-only links (``#anchor``) and empty hrefs are excluded.
    """
    pattern = re.compile(r'<a[^>]+href=["\']([^"\'#][^"\']*)["\']', re.IGNORECASE)
    seen: set[str] = set()
    links: List[str] = []
    for m in pattern.finditer(html):
        href = m.group(1).strip()
        if href and href not in seen:
            seen.add(href)
            links.append(href)
    return links


def _bs4_fallback(html: str) -> str:
    """Extract readable text using BeautifulSoup ``<main>``/``<article>`` heuristics."""
    from bs4 import BeautifulSoup  # noqa: PLC0415

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "nav", "footer", "header"]):
        tag.decompose()
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return soup.get_text(separator="\n", strip=True)
    return container.get_text(separator="\n", strip=True)


# ---------------------------------------------------------------------------
# Text sanitising
# ---------------------------------------------------------------------------

def clean_text(text: str | None) -> str:
    """Normalise whitespace in extracted text.

    Control characters are dropped, CRLF becomes LF, runs of three or more
    newlines collapse to a blank line and runs of spaces/tabs to one space.
    """
    text = _CONTROL_CHARS.sub("", text or "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _MANY_NEWLINES.sub("\n\n", text)
    text = _INLINE_SPACE.sub(" ", text)
    return text.strip()


def split_paragraphs(text: str, min_len: int = 15) -> List[str]:
    """Split cleaned *text* on blank lines, dropping fragments under *min_len*."""
    paragraphs = []
    for para in _PARAGRAPH_BREAK.split(clean_text(text)):
        para = para.strip()
        if len(para) > min_len:
            paragraphs.append(para)
    return paragraphs


def word_count(text: str) -> int:
    return len(text.split())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_content(raw: RawPage) -> CleanPage:
    """Extract clean, readable text from *raw*.

    Tries ``trafilatura`` first for best-in-class readability.  Falls back to
    a BeautifulSoup heuristic when trafilatura returns ``None`` or an empty
    string (e.g., highly dynamic or minimal pages).
    """
    text: str | None = trafilatura.extract(
        raw.html,
        include_links=False,
        include_images=False,
        include_tables=True,
        no_fallback=False,
        url=raw.url,
    )

    if not text:
        text = _bs4_fallback(raw.html)

    return CleanPage(
        url=raw.url,
        title=_extract_title(raw.html),
        text=clean_text(text or ""),
        links=_extract_links(raw.html),
    )
