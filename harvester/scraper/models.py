"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int
    content_type: str = ""

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.content_type.lower()


@dataclass
class CleanPage:
    """Cleaned, readable content extracted from a :class:`RawPage`."""

    url: str
    title: str
    text: str
    links: List[str] = field(default_factory=list)


@dataclass
class Document:
    """One source, ready to be written into a volume.

    ``type`` is ``"PDF"`` for downloaded documents and ``"WEB"`` for
    rendered pages.
    """

    type: str
    title: str
    url: str
    content: str
    word_count: int
    date: datetime = field(default_factory=datetime.now)
    path: Path | None = None

    @property
    def is_pdf(self) -> bool:
        return self.type == "PDF"
