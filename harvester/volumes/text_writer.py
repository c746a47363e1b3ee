"""Plain-text volumes."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Sequence

from harvester.scraper.extractor import split_paragraphs
from harvester.scraper.models import Document

_RULE = "=" * 72
_THIN_RULE = "-" * 72


def render_text_volume(volume_number: int, documents: Sequence[Document], query: str) -> str:
    lines = [
        _RULE,
        f"RESEARCH COMPILATION - Volume {volume_number}",
        f"Research Topic: \"{query}\"",
        f"Generated: {datetime.now():%A, %B %d, %Y %H:%M}",
        f"Total Sources: {len(documents)}",
        _RULE,
        "",
        "TABLE OF CONTENTS",
        "",
    ]
    for idx, doc in enumerate(documents, 1):
        label = "PDF" if doc.is_pdf else "WEB"
        lines.append(f"{idx}. [{label}] {doc.title}")
    lines.append("")

    for idx, doc in enumerate(documents, 1):
        kind = "PDF DOCUMENT" if doc.is_pdf else "WEB ARTICLE"
        lines += [
            _RULE,
            f"SOURCE {idx} of {len(documents)}  |  {kind}",
            f"Title: {doc.title}",
            f"URL: {doc.url}",
            f"Date: {doc.date:%Y-%m-%d}  |  Words: {doc.word_count:,}",
            _THIN_RULE,
            "",
        ]
        for para in split_paragraphs(doc.content):
            lines += [para, ""]
        lines += [f"--- End of Source {idx} ---", ""]

    return "\n".join(lines)


def write_text_volume(path: Path, volume_number: int, documents: Sequence[Document], query: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_text_volume(volume_number, documents, query), encoding="utf-8")
    return path
