"""Multi-engine link harvesting with automatic fallback.

Engines are tried in the configured order (``settings.search_engines``):

  * HTML engines (DuckDuckGo HTML/Lite, Startpage, Brave, Mojeek, Yandex)
    are scraped with CSS selectors, through either a stealth browser or a
    plain ``httpx`` transport.
  * ``ddgs`` uses the ``duckduckgo_search`` library and is retried with
    exponential backoff when rate-limited.

All providers share a common interface: ``search(query, max_results) -> list[str]``.
The ``SearchProviderChain`` asks each provider for the links still missing
and accumulates unique results until the target is met.  If every provider
fails the chain returns ``[]``.
"""

from __future__ import annotations

import random
import time
from abc import ABC, abstractmethod
from typing import Iterable, Protocol
from urllib.parse import urlsplit

import httpx
from duckduckgo_search import DDGS
from duckduckgo_search.exceptions import DuckDuckGoSearchException, RatelimitException

from harvester.config import settings
from harvester.search.engines import ENGINES, EngineSpec, parse_results
from harvester.stealth import browser_headers


def _normalise_query(query: str) -> str:
    """Strip surrounding double-quotes that some engines refuse."""
    q = query.strip()
    if q.startswith('"') and q.endswith('"') and len(q) > 2:
        q = q[1:-1].strip()
    return q


def build_query(topic: str, filetype_pdf: bool | None = None) -> str:
    """Return the search query for *topic*, optionally limited to PDFs."""
    if filetype_pdf is None:
        filetype_pdf = settings.filetype_pdf
    query = _normalise_query(topic)
    if filetype_pdf and "filetype:pdf" not in query.lower():
        query = f"{query} filetype:pdf"
    return query


def filter_pdf_links(links: Iterable[str]) -> list[str]:
    """Keep only links whose path ends in ``.pdf``."""
    return [link for link in links if urlsplit(link).path.lower().endswith(".pdf")]


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class Transport(Protocol):
    def get_html(self, url: str, wait_selector: str | None = None) -> str: ...


class HttpTransport:
    """Fetch result pages with ``httpx`` and browser-like headers.

    ``wait_selector`` is accepted for interface parity with the browser
    transport and ignored.
    """

    def get_html(self, url: str, wait_selector: str | None = None) -> str:
        with httpx.Client(
            headers=browser_headers(),
            timeout=settings.request_timeout,
            follow_redirects=True,
        ) as client:
            resp = client.get(url)
            resp.raise_for_status()
            return resp.text


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchProvider(ABC):
    """Abstract base class for a single search provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    def search(self, query: str, max_results: int = 10) -> list[str]:
        """Return a list of URLs.  Must return ``[]`` (not raise) on failure."""


# ---------------------------------------------------------------------------
# HTML result-page provider
# ---------------------------------------------------------------------------

class HtmlEngineProvider(SearchProvider):
    """Load an engine's result page through *transport* and scrape its links."""

    def __init__(self, spec: EngineSpec, transport: Transport) -> None:
        self.spec = spec
        self.transport = transport

    @property
    def name(self) -> str:
        return self.spec.label

    def search(self, query: str, max_results: int = 10) -> list[str]:
        url = self.spec.build_url(_normalise_query(query))
        try:
            html = self.transport.get_html(url, self.spec.wait_selector)
            links = parse_results(html, self.spec, url)
        except Exception as exc:
            print(f"[{self.name}] failed: {exc!r:.160}")
            return []

        links = links[:max_results]
        print(f"[{self.name}] ✓ {len(links)} result(s).")
        return links


# ---------------------------------------------------------------------------
# DuckDuckGo library provider (with exponential backoff)
# ---------------------------------------------------------------------------

class DuckDuckGoProvider(SearchProvider):
    """Wrapper around ``duckduckgo_search.DDGS`` with retry on rate-limit."""

    @property
    def name(self) -> str:
        return "DuckDuckGo"

    def search(self, query: str, max_results: int = 10) -> list[str]:
        query = _normalise_query(query)
        base_delay = settings.search_retry_base_delay
        max_retries = settings.search_retry_max

        for attempt in range(max_retries + 1):
            try:
                with DDGS() as ddgs:
                    results = ddgs.text(query, max_results=max_results) or []
                urls = [r["href"] for r in results if "href" in r]
                if urls:
                    print(f"[DuckDuckGo] ✓ {len(urls)} result(s).")
                return urls
            except RatelimitException:
                if attempt < max_retries:
                    delay = base_delay * (2 ** attempt)
                    print(
                        f"[DuckDuckGo] rate-limited (attempt {attempt + 1}/{max_retries}); "
                        f"retrying in {delay:.0f}s …"
                    )
                    time.sleep(delay)
                else:
                    print(f"[DuckDuckGo] exhausted {max_retries} retries — rate-limited.")
                    return []
            except DuckDuckGoSearchException as exc:
                print(f"[DuckDuckGo] search error: {exc}")
                return []
            except Exception as exc:
                print(f"[DuckDuckGo] error: {exc}")
                return []

        return []


# ---------------------------------------------------------------------------
# Provider chain
# ---------------------------------------------------------------------------

class SearchProviderChain:
    """Try providers in order, accumulating unique links up to the target."""

    def __init__(self, providers: list[SearchProvider], delay: bool = True) -> None:
        self._providers = providers
        self._delay = delay

    @property
    def providers(self) -> list[SearchProvider]:
        return list(self._providers)

    def _pause(self) -> None:
        if self._delay:
            time.sleep(random.uniform(settings.engine_delay_min, settings.engine_delay_max))

    def search(self, query: str, max_results: int = 10) -> list[str]:
        links: list[str] = []
        seen: set[str] = set()

        for i, provider in enumerate(self._providers):
            if len(links) >= max_results:
                break
            if i > 0:
                self._pause()
            for url in provider.search(query, max_results=max_results - len(links)):
                if url not in seen and len(links) < max_results:
                    seen.add(url)
                    links.append(url)

        if not links:
            print("[search chain] all providers returned no results.")
        else:
            print(f"[search chain] {len(links)} unique link(s) for {query!r}.")
        return links


# ---------------------------------------------------------------------------
# Chain factory
# ---------------------------------------------------------------------------

def build_chain(
    transport: Transport | None = None,
    engines: Iterable[str] | None = None,
    delay: bool = True,
) -> SearchProviderChain:
    """Build a chain for *engines* (defaults to ``settings.search_engines``).

    HTML engines go through *transport*; without one, a plain
    :class:`HttpTransport` is used.  Unknown engine names are skipped.
    """
    transport = transport or HttpTransport()
    providers: list[SearchProvider] = []
    for name in engines or settings.search_engines:
        if name == "ddgs":
            providers.append(DuckDuckGoProvider())
        elif name in ENGINES:
            providers.append(HtmlEngineProvider(ENGINES[name], transport))
        else:
            print(f"[search chain] unknown engine {name!r}, skipping.")
    return SearchProviderChain(providers, delay=delay)
