"""Tests for harvester.volumes: naming, text and PDF writers, batching."""

from __future__ import annotations

from datetime import datetime

import pypdf
import pytest

from harvester.scraper.models import Document
from harvester.volumes import (
    VolumeBuffer,
    next_volume_number,
    safe_name,
    volume_path,
    volume_stem,
    write_volume,
)
from harvester.volumes.text_writer import render_text_volume

_PARAGRAPHS = "\n\n".join(
    f"Paragraph {i} covers grid scale storage, lithium supply and policy incentives."
    for i in range(30)
)


def _doc(n: int, kind: str = "WEB", content: str = _PARAGRAPHS) -> Document:
    return Document(
        type=kind,
        title=f"Source title {n}",
        url=f"https://example.org/{n}",
        content=content,
        word_count=len(content.split()),
        date=datetime(2024, 5, 1),
    )


def _outline_titles(outline) -> list[str]:
    titles: list[str] = []
    for item in outline:
        if isinstance(item, list):
            titles += _outline_titles(item)
        else:
            titles.append(item.title)
    return titles


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

class TestNaming:
    def test_safe_name_replaces_and_truncates(self):
        assert safe_name("Solar / Wind: 2024?") == "Solar___Wind__2024_"
        assert len(safe_name("x" * 80)) == 50

    def test_volume_stem_collapses_underscores(self):
        assert volume_stem("  Solar / Wind: 2024? ") == "Solar_Wind_2024"

    def test_volume_stem_default(self):
        assert volume_stem("???") == "Research"

    def test_volume_path(self, tmp_path):
        path = volume_path(tmp_path, "battery storage", 3, "pdf")
        assert path == tmp_path / "battery_storage_Research_File_3.pdf"

    def test_next_volume_number_skips_existing(self, tmp_path):
        assert next_volume_number(tmp_path, "grid", "txt") == 1
        (tmp_path / "grid_Research_File_1.txt").write_text("x")
        (tmp_path / "grid_Research_File_2.txt").write_text("x")
        (tmp_path / "grid_Research_File_1.pdf").write_text("x")
        assert next_volume_number(tmp_path, "grid", "txt") == 3
        assert next_volume_number(tmp_path, "grid", "pdf") == 2

    def test_next_volume_number_continues_after_highest(self, tmp_path):
        (tmp_path / "grid_Research_File_1.txt").write_text("x")
        (tmp_path / "grid_Research_File_3.txt").write_text("x")
        (tmp_path / "grid_storage_Research_File_9.txt").write_text("other topic")
        assert next_volume_number(tmp_path, "grid", "txt") == 4

    def test_next_volume_number_missing_directory(self, tmp_path):
        assert next_volume_number(tmp_path / "nope", "grid", "pdf") == 1


# ---------------------------------------------------------------------------
# Text volumes
# ---------------------------------------------------------------------------

class TestTextVolume:
    def test_layout(self):
        docs = [_doc(1, "PDF"), _doc(2, "WEB")]
        text = render_text_volume(4, docs, "grid storage")

        assert "RESEARCH COMPILATION - Volume 4" in text
        assert 'Research Topic: "grid storage"' in text
        assert "Total Sources: 2" in text
        assert "1. [PDF] Source title 1" in text
        assert "2. [WEB] Source title 2" in text
        assert "SOURCE 1 of 2  |  PDF DOCUMENT" in text
        assert "SOURCE 2 of 2  |  WEB ARTICLE" in text
        assert "URL: https://example.org/2" in text
        assert "Date: 2024-05-01" in text
        assert "--- End of Source 2 ---" in text

    def test_short_fragments_dropped(self):
        doc = _doc(1, content="Page 7\n\nA long enough paragraph to survive filtering.")
        text = render_text_volume(1, [doc], "q")
        assert "A long enough paragraph to survive filtering." in text
        assert "Page 7" not in text

    def test_write_volume_txt(self, tmp_path):
        path = write_volume(tmp_path, "grid storage", 1, [_doc(1)], "txt")
        assert path.name == "grid_storage_Research_File_1.txt"
        assert "Source title 1" in path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# PDF volumes
# ---------------------------------------------------------------------------

class TestPdfVolume:
    def test_renders_readable_pdf(self, tmp_path):
        docs = [_doc(1, "PDF"), _doc(2, "WEB")]
        path = write_volume(tmp_path, "grid storage", 2, docs, "pdf")

        assert path.name == "grid_storage_Research_File_2.pdf"
        reader = pypdf.PdfReader(str(path))
        # cover + table of contents + one page per source at least
        assert len(reader.pages) >= 4
        assert "grid storage" in reader.metadata.title
        assert reader.metadata.author == "Research Bot"

        text = "\n".join(page.extract_text() or "" for page in reader.pages)
        assert "RESEARCH COMPILATION" in text
        assert "TABLE OF CONTENTS" in text
        assert "SOURCE 1 of 2" in text
        assert "End of Source 2" in text

    def test_outline(self, tmp_path):
        docs = [_doc(1), _doc(2)]
        path = write_volume(tmp_path, "q", 1, docs, "pdf")

        titles = _outline_titles(pypdf.PdfReader(str(path)).outline)
        assert titles == [
            "Title Page",
            "Table of Contents",
            "Sources",
            "1. Source title 1",
            "2. Source title 2",
        ]

    def test_escapes_markup_in_titles(self, tmp_path):
        doc = _doc(1)
        doc.title = "Costs < benefits & <b>risks</b>"
        path = write_volume(tmp_path, "q", 1, [doc], "pdf")
        assert path.exists()

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            write_volume(tmp_path, "q", 1, [_doc(1)], "docx")


# ---------------------------------------------------------------------------
# Buffer
# ---------------------------------------------------------------------------

class TestVolumeBuffer:
    def test_flushes_every_batch(self, tmp_path):
        buf = VolumeBuffer("grid", tmp_path, batch_size=2, fmt="txt")

        assert buf.add(_doc(1)) is None
        first = buf.add(_doc(2))
        assert first == tmp_path / "grid_Research_File_1.txt"
        assert len(buf) == 0

        buf.add(_doc(3))
        last = buf.close()
        assert last == tmp_path / "grid_Research_File_2.txt"
        assert buf.volumes == [first, last]
        assert "Total Sources: 1" in last.read_text(encoding="utf-8")

    def test_close_with_nothing_pending(self, tmp_path):
        buf = VolumeBuffer("grid", tmp_path, batch_size=2, fmt="txt")
        assert buf.close() is None
        assert buf.volumes == []
        assert list(tmp_path.iterdir()) == []

    def test_continues_numbering(self, tmp_path):
        (tmp_path / "grid_Research_File_1.txt").write_text("old run")
        buf = VolumeBuffer("grid", tmp_path, batch_size=1, fmt="txt")
        path = buf.add(_doc(1))
        assert path.name == "grid_Research_File_2.txt"
        assert (tmp_path / "grid_Research_File_1.txt").read_text() == "old run"

    def test_rejects_bad_arguments(self, tmp_path):
        with pytest.raises(ValueError):
            VolumeBuffer("grid", tmp_path, batch_size=0)
        with pytest.raises(ValueError):
            VolumeBuffer("grid", tmp_path, fmt="html")
