"""Search-engine result pages and how to scrape links out of them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List
from urllib.parse import parse_qs, quote, urljoin, urlsplit

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class EngineSpec:
    """Where to send a query and which anchors on the result page are hits."""

    name: str
    label: str
    url_template: str
    selectors: tuple[str, ...]
    exclude: tuple[str, ...]
    wait_selector: str | None = None
    fallback_any_link: bool = False

    def build_url(self, query: str) -> str:
        return self.url_template.format(query=quote(query, safe=""))


ENGINES: Dict[str, EngineSpec] = {
    spec.name: spec
    for spec in (
        EngineSpec(
            name="ddg_html",
            label="DDG HTML",
            url_template="https://html.duckduckgo.com/html/?q={query}",
            selectors=(".result__a", ".result__url", "a.result-link"),
            exclude=("duckduckgo.com",),
            fallback_any_link=True,
        ),
        EngineSpec(
            name="ddg_lite",
            label="DDG Lite",
            url_template="https://lite.duckduckgo.com/lite/?q={query}",
            selectors=("table tr a.result-link", 'a[href^="http"]'),
            exclude=("duckduckgo.com",),
        ),
        EngineSpec(
            name="startpage",
            label="Startpage",
            url_template="https://www.startpage.com/sp/search?query={query}",
            selectors=(".w-gl__result a.w-gl__result-title", ".result a"),
            exclude=("startpage.com",),
            wait_selector=".w-gl__result",
        ),
        EngineSpec(
            name="brave",
            label="Brave",
            url_template="https://search.brave.com/search?q={query}",
            selectors=(".snippet a", ".result a", 'a[href^="http"]'),
            exclude=("brave.com",),
            wait_selector=".snippet",
        ),
        EngineSpec(
            name="mojeek",
            label="Mojeek",
            url_template="https://www.mojeek.com/search?q={query}",
            selectors=(".results-standard a", "li.result a", 'a[href^="http"]'),
            exclude=("mojeek.com",),
            wait_selector=".results-standard",
        ),
        EngineSpec(
            name="yandex",
            label="Yandex",
            url_template="https://yandex.com/search/?text={query}",
            selectors=(".serp-item a", ".organic__url", ".link"),
            exclude=("yandex",),
            wait_selector=".serp-item",
        ),
    )
}


def unwrap_redirect(href: str) -> str:
    """Return the target of a DuckDuckGo ``/l/?uddg=`` redirect, else *href*."""
    parts = urlsplit(href)
    if parts.path.startswith("/l/"):
        target = parse_qs(parts.query).get("uddg")
        if target:
            return target[0]
    return href


def _collect(soup: BeautifulSoup, selector: str, spec: EngineSpec, base_url: str,
             seen: set[str], links: List[str]) -> None:
    for anchor in soup.select(selector):
        href = anchor.get("href")
        if not href:
            continue
        href = unwrap_redirect(urljoin(base_url, href.strip()))
        if not href.startswith(("http://", "https://")):
            continue
        if any(fragment in href for fragment in spec.exclude):
            continue
        if href not in seen:
            seen.add(href)
            links.append(href)


def parse_results(html: str, spec: EngineSpec, base_url: str = "") -> List[str]:
    """Scrape result links from a search-engine page.

    Links are resolved against *base_url*, redirect-unwrapped, restricted to
    http(s), stripped of the engine's own hosts and deduplicated in order.
    """
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    links: List[str] = []
    _collect(soup, ", ".join(spec.selectors), spec, base_url, seen, links)
    if not links and spec.fallback_any_link:
        _collect(soup, 'a[href^="http"]', spec, base_url, seen, links)
    return links
