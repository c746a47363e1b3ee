"""End-to-end task runner: harvest → download/fetch → extract → volumes.

Links are processed in chunks of ``settings.concurrency`` on a
``ThreadPoolExecutor``.  Every per-link failure is logged and counted, never
raised, so one bad URL cannot end a task.  A task stops as soon as
``settings.max_files`` documents (or raw PDFs in ``download`` mode) are in.
"""

from __future__ import annotations

import hashlib
import os
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List
from urllib.parse import unquote, urlsplit

from harvester.config import settings
from harvester.scraper.downloader import download_pdf, is_pdf_link
from harvester.scraper.extractor import clean_text, extract_content, word_count
from harvester.scraper.fetcher import fetch_url
from harvester.scraper.models import Document
from harvester.scraper.pdf_text import extract_pdf
from harvester.search.providers import (
    SearchProviderChain,
    build_chain,
    build_query,
    filter_pdf_links,
)
from harvester.stealth import StealthBrowser
from harvester.volumes import VolumeBuffer, safe_name


_DOC_NAME = re.compile(r"doc_(\d+)\.pdf")


@dataclass
class TaskResult:
    topic: str
    links: List[str] = field(default_factory=list)
    documents: int = 0
    downloads: List[Path] = field(default_factory=list)
    volumes: List[Path] = field(default_factory=list)
    failures: int = 0

    @property
    def ok(self) -> bool:
        return bool(self.documents or self.downloads)


def _highest_doc_number(directory: Path) -> int:
    numbers = [0]
    for path in directory.glob("doc_*.pdf"):
        match = _DOC_NAME.fullmatch(path.name)
        if match:
            numbers.append(int(match.group(1)))
    return max(numbers)


class _FileNamer:
    """Hands out ``doc_N.pdf`` names to successful downloads only.

    Numbering continues after the highest ``doc_N.pdf`` already in
    *directory*, so a rerun never replaces an earlier run's files.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._count = _highest_doc_number(directory)
        self._lock = threading.Lock()

    def claim(self, tmp: Path) -> Path:
        with self._lock:
            self._count += 1
            final = self.directory / f"doc_{self._count}.pdf"
            # another namer may share the directory (topics with the same safe name)
            while final.exists():
                self._count += 1
                final = self.directory / f"doc_{self._count}.pdf"
            tmp.replace(final)
        return final


# ---------------------------------------------------------------------------
# Per-link work
# ---------------------------------------------------------------------------

def _download_tmp(url: str, task_dir: Path) -> Path:
    tmp = task_dir / f".{hashlib.md5(url.encode()).hexdigest()[:12]}.pdf"
    return download_pdf(url, tmp)


def download_link(url: str, task_dir: Path, namer: _FileNamer) -> Path:
    """Download *url* as the next ``doc_N.pdf`` in *task_dir*."""
    return namer.claim(_download_tmp(url, task_dir))


def _title_from_url(url: str) -> str:
    if is_pdf_link(url):
        return os.path.basename(unquote(urlsplit(url).path))[:-4] or url
    return url


def _pdf_document(url: str, task_dir: Path, namer: _FileNamer) -> Document | None:
    tmp = _download_tmp(url, task_dir)
    try:
        title, text = extract_pdf(tmp)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    if title == tmp.stem:
        # no metadata title; the temp name means nothing to a reader
        title = _title_from_url(url)

    text = clean_text(text)
    words = word_count(text)
    if words < settings.min_words:
        print(f"[pipeline] skip {url}: only {words} word(s) of text")
        tmp.unlink(missing_ok=True)
        return None

    path = namer.claim(tmp)
    return Document(type="PDF", title=title, url=url, content=text, word_count=words, path=path)


def process_link(url: str, task_dir: Path, namer: _FileNamer) -> Document | None:
    """Turn one harvested link into a :class:`Document`.

    PDF links (by suffix or by response content type) go through the
    download chain and ``pypdf``; everything else is fetched and run through
    the HTML extractor.  Returns ``None`` for documents below
    ``settings.min_words``.

    Raises:
        Any fetch, download or parse error; the caller logs and continues.
    """
    if is_pdf_link(url):
        return _pdf_document(url, task_dir, namer)

    raw = fetch_url(url)
    if raw.is_pdf:
        return _pdf_document(url, task_dir, namer)

    clean = extract_content(raw)
    words = word_count(clean.text)
    if words < settings.min_words:
        print(f"[pipeline] skip {url}: only {words} word(s) of text")
        return None
    return Document(type="WEB", title=clean.title or url, url=url,
                    content=clean.text, word_count=words)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def harvest_links(topic: str, chain: SearchProviderChain) -> List[str]:
    query = build_query(topic)
    print(f"[HARVEST] {query!r} (target {settings.harvest_target})")
    links = chain.search(query, max_results=settings.harvest_target)
    if settings.pdf_links_only:
        links = filter_pdf_links(links)
        print(f"[HARVEST] {len(links)} link(s) end in .pdf")
    return links


def run_task(topic: str, chain: SearchProviderChain) -> TaskResult:
    """Harvest links for *topic* and process them into files or volumes."""
    print(f"\n[TASK] {topic!r}")
    result = TaskResult(topic=topic)
    download_only = settings.mode == "download"

    task_dir = settings.output_dir / safe_name(topic)
    task_dir.mkdir(parents=True, exist_ok=True)

    result.links = harvest_links(topic, chain)
    if not result.links:
        print(f"[TASK] no links found for {topic!r}")
        return result

    namer = _FileNamer(task_dir)
    buffer = None
    if not download_only:
        buffer = VolumeBuffer(topic, settings.output_dir, settings.batch_size, settings.output_format)
    worker: Callable = download_link if download_only else process_link

    limit = settings.max_files
    pos = 0
    accepted = 0
    while pos < len(result.links) and accepted < limit:
        if pos > 0:
            time.sleep(settings.rate_limit_delay)
        chunk = result.links[pos:pos + min(max(1, settings.concurrency), limit - accepted)]
        pos += len(chunk)

        with ThreadPoolExecutor(max_workers=len(chunk)) as pool:
            futures = [(url, pool.submit(worker, url, task_dir, namer)) for url in chunk]
            for url, future in futures:
                try:
                    outcome = future.result()
                except Exception as exc:
                    result.failures += 1
                    print(f"[SCRAPING] ✗ Failed {url!r}: {exc}")
                    continue
                if outcome is None:
                    continue
                accepted += 1
                if download_only:
                    result.downloads.append(outcome)
                    print(f"[SCRAPING] ✓ [{accepted}] {outcome.name} ← {url[:60]}")
                else:
                    result.documents += 1
                    if outcome.path is not None:
                        result.downloads.append(outcome.path)
                    print(f"[SCRAPING] ✓ [{accepted}] {outcome.type} {outcome.title[:60]!r}")
                    buffer.add(outcome)

    if buffer is not None:
        buffer.close()
        result.volumes = list(buffer.volumes)

    print(
        f"[TASK] {topic!r}: {result.documents} document(s), {len(result.downloads)} file(s), "
        f"{len(result.volumes)} volume(s), {result.failures} failure(s)"
    )
    return result


def _run_safely(topic: str, chain: SearchProviderChain) -> TaskResult:
    try:
        return run_task(topic, chain)
    except Exception as exc:
        print(f"[TASK] ✗ {topic!r} aborted: {exc}")
        return TaskResult(topic=topic, failures=1)


def run_tasks(tasks: List[str] | None = None) -> List[TaskResult]:
    """Run every task in order, sharing one search chain (and browser)."""
    tasks = tasks or settings.tasks
    settings.ensure_output_dir()
    print(f"[RUN] Targets: [ {' | '.join(tasks)} ]  →  {settings.output_dir}")

    if settings.search_backend == "browser":
        with StealthBrowser(headless=settings.headless) as browser:
            chain = build_chain(transport=browser)
            return [_run_safely(topic, chain) for topic in tasks]

    chain = build_chain()
    return [_run_safely(topic, chain) for topic in tasks]
