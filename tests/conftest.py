"""Shared fixtures: real on-disk PDFs and an isolated settings object."""

from __future__ import annotations

from pathlib import Path

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


def build_pdf(path: Path, text: str = "", title: str | None = None) -> Path:
    """Write a small but valid multi-line PDF with extractable *text*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(path), pagesize=A4)
    if title:
        c.setTitle(title)
    y = 800
    for line in (text or "placeholder").splitlines() or [""]:
        c.drawString(72, y, line)
        y -= 14
        if y < 72:
            c.showPage()
            y = 800
    c.showPage()
    c.save()
    return path


LOREM = "\n".join(
    f"Line {i}: renewable energy storage and grid battery research notes." for i in range(20)
)


@pytest.fixture
def make_pdf(tmp_path):
    def _make(name: str = "sample.pdf", text: str = LOREM, title: str | None = None) -> Path:
        return build_pdf(tmp_path / name, text, title)

    return _make


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point output at *tmp_path* and remove every delay."""
    from harvester.config import settings

    monkeypatch.setattr(settings, "output_dir", tmp_path / "out")
    monkeypatch.setattr(settings, "debug_dir", tmp_path / "debug")
    monkeypatch.setattr(settings, "rate_limit_delay", 0.0)
    monkeypatch.setattr(settings, "engine_delay_min", 0.0)
    monkeypatch.setattr(settings, "engine_delay_max", 0.0)
    monkeypatch.setattr(settings, "min_pdf_bytes", 100)
    monkeypatch.setattr(settings, "max_pdf_bytes", 50_000_000)
    monkeypatch.setattr(settings, "min_words", 5)
    monkeypatch.setattr(settings, "mode", "compile")
    monkeypatch.setattr(settings, "output_format", "txt")
    monkeypatch.setattr(settings, "batch_size", 2)
    monkeypatch.setattr(settings, "max_files", 10)
    monkeypatch.setattr(settings, "harvest_target", 30)
    monkeypatch.setattr(settings, "concurrency", 3)
    monkeypatch.setattr(settings, "filetype_pdf", True)
    monkeypatch.setattr(settings, "pdf_links_only", False)
    monkeypatch.setattr(settings, "search_backend", "http")
    monkeypatch.setattr(settings, "download_methods", ["http"])
    return settings
