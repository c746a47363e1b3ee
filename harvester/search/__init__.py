"""Search package — harvest result links from public search engines."""

from harvester.search.engines import ENGINES, EngineSpec, parse_results
from harvester.search.providers import (
    DuckDuckGoProvider,
    HtmlEngineProvider,
    HttpTransport,
    SearchProvider,
    SearchProviderChain,
    build_chain,
    build_query,
    filter_pdf_links,
)

__all__ = [
    "ENGINES",
    "EngineSpec",
    "parse_results",
    "SearchProvider",
    "HtmlEngineProvider",
    "DuckDuckGoProvider",
    "HttpTransport",
    "SearchProviderChain",
    "build_chain",
    "build_query",
    "filter_pdf_links",
]
