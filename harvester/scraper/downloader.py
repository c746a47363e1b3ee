"""PDF download with an ordered chain of fallback methods.

Each method streams the body into ``<dest>.part``.  The first method that
leaves a valid PDF behind wins and the part file is moved into place;
otherwise the next method is tried.  Methods:

``http``     plain ``httpx`` stream with a browser UA and a Google referer.
``cookies``  visit the link's origin in a stealth browser first, then
             forward the session cookies to an ``httpx`` stream.
``curl``     shell out to ``curl -L``.
``browser``  Playwright's request context inside a stealth browser.
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import unquote, urlsplit

import httpx

from harvester.config import settings
from harvester.stealth import browser_headers, stealth_context

PDF_MAGIC = b"%PDF"
_HEAD_BYTES = 1024
_REFERER = "https://www.google.com/"


class DownloadError(Exception):
    """Raised when every download method failed for a URL."""

    def __init__(self, url: str, failures: list[str] | None = None) -> None:
        self.url = url
        self.failures = failures or []
        detail = "; ".join(self.failures) or "no download methods configured"
        super().__init__(f"could not download {url}: {detail}")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def looks_like_pdf(head: bytes) -> bool:
    """Return ``True`` if *head* carries the PDF magic bytes and is not HTML."""
    stripped = head.lstrip()[:64].lower()
    if stripped.startswith((b"<!doctype html", b"<html", b"<head", b"<body")):
        return False
    return PDF_MAGIC in head[:_HEAD_BYTES]


def is_valid_pdf(path: str | Path, min_bytes: int | None = None) -> bool:
    """Check size threshold and magic bytes of the file at *path*."""
    pdf_path = Path(path)
    if not pdf_path.is_file():
        return False
    threshold = settings.min_pdf_bytes if min_bytes is None else min_bytes
    if pdf_path.stat().st_size < threshold:
        return False
    with pdf_path.open("rb") as fh:
        return looks_like_pdf(fh.read(_HEAD_BYTES))


def pdf_filename_for(url: str) -> str:
    """Derive a filesystem-safe ``.pdf`` file name from *url*."""
    name = os.path.basename(unquote(urlsplit(url).path))
    if name.lower().endswith(".pdf"):
        stem = re.sub(r"[^A-Za-z0-9._-]", "_", name[:-4]).strip("._")
        if stem:
            return stem[:80] + ".pdf"
    return hashlib.md5(url.encode()).hexdigest()[:16] + ".pdf"


def is_pdf_link(url: str) -> bool:
    return urlsplit(url).path.lower().endswith(".pdf")


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------

def _stream_to(client: httpx.Client, url: str, part: Path) -> None:
    written = 0
    with client.stream("GET", url) as response:
        response.raise_for_status()
        with part.open("wb") as fh:
            for chunk in response.iter_bytes():
                written += len(chunk)
                if written > settings.max_pdf_bytes:
                    raise DownloadError(url, [f"larger than {settings.max_pdf_bytes} bytes"])
                fh.write(chunk)


def _download_http(url: str, part: Path) -> None:
    headers = browser_headers()
    headers["Referer"] = _REFERER
    with httpx.Client(
        headers=headers,
        timeout=settings.download_timeout,
        follow_redirects=True,
    ) as client:
        _stream_to(client, url, part)


def _browser_cookies(url: str) -> dict[str, str]:
    """Visit the origin of *url* in a stealth browser and return its cookies."""
    parts = urlsplit(url)
    origin = f"{parts.scheme}://{parts.netloc}/"
    with stealth_context(headless=settings.headless) as context:
        page = context.new_page()
        page.goto(origin, wait_until="domcontentloaded",
                  timeout=int(settings.request_timeout * 1000))
        cookies = context.cookies([url])
    return {c["name"]: c["value"] for c in cookies}


def _download_with_cookies(url: str, part: Path) -> None:
    cookies = _browser_cookies(url)
    parts = urlsplit(url)
    headers = browser_headers()
    headers["Referer"] = f"{parts.scheme}://{parts.netloc}/"
    with httpx.Client(
        headers=headers,
        cookies=cookies,
        timeout=settings.download_timeout,
        follow_redirects=True,
    ) as client:
        _stream_to(client, url, part)


def _download_curl(url: str, part: Path) -> None:
    curl = shutil.which("curl")
    if curl is None:
        raise DownloadError(url, ["curl not found on PATH"])
    subprocess.run(
        [
            curl, "-L", "--fail", "--silent", "--show-error",
            "--max-time", str(int(settings.download_timeout)),
            "--max-filesize", str(settings.max_pdf_bytes),
            "-A", browser_headers()["User-Agent"],
            "-e", _REFERER,
            "-o", str(part),
            url,
        ],
        check=True,
        capture_output=True,
        timeout=settings.download_timeout + 5,
    )


def _download_browser(url: str, part: Path) -> None:
    with stealth_context(headless=settings.headless) as context:
        response = context.request.get(
            url,
            headers={"Referer": _REFERER},
            timeout=settings.download_timeout * 1000,
        )
        if not response.ok:
            raise DownloadError(url, [f"HTTP {response.status}"])
        length = response.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.max_pdf_bytes:
            raise DownloadError(url, [f"larger than {settings.max_pdf_bytes} bytes"])
        body = response.body()
    if len(body) > settings.max_pdf_bytes:
        raise DownloadError(url, [f"larger than {settings.max_pdf_bytes} bytes"])
    part.write_bytes(body)


def _resolve_method(name: str) -> Callable[[str, Path], None] | None:
    methods = {
        "http": _download_http,
        "cookies": _download_with_cookies,
        "curl": _download_curl,
        "browser": _download_browser,
    }
    return methods.get(name)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def download_pdf(url: str, dest: str | Path, methods: Iterable[str] | None = None) -> Path:
    """Download the PDF at *url* to *dest*, trying each method in turn.

    Args:
        url: Link to the document.
        dest: Final path of the PDF; parent directories are created.
        methods: Method names in priority order (defaults to
            ``settings.download_methods``).

    Returns:
        *dest* as a :class:`~pathlib.Path`.

    Raises:
        DownloadError: If no method produced a valid PDF.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    part = dest.with_name(dest.name + ".part")
    failures: list[str] = []

    for name in methods or settings.download_methods:
        method = _resolve_method(name)
        if method is None:
            print(f"[download] unknown method {name!r}, skipping.")
            continue
        try:
            method(url, part)
            if is_valid_pdf(part):
                part.replace(dest)
                print(f"[download] ✓ {name}: {dest.name}")
                return dest
            failures.append(f"{name}: not a valid PDF")
            print(f"[download] {name} returned an invalid PDF for {url}")
        except Exception as exc:
            failures.append(f"{name}: {exc}")
            print(f"[download] {name} failed for {url}: {exc}")
        finally:
            part.unlink(missing_ok=True)

    raise DownloadError(url, failures)
