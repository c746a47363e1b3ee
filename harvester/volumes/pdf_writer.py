"""PDF volumes rendered with ReportLab.

Layout of one volume:

    Title page        → compilation title, volume number, topic, metadata
    Table of contents → one line per source with a [PDF]/[WEB] label
    Sources           → header bar, title, metadata box, justified body,
                        "continued" running header on overflow pages

The sidebar outline mirrors that structure: *Title Page*, *Table of
Contents* and *Sources* with one child per source.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import (
    Flowable,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)
from reportlab.platypus.flowables import HRFlowable

from harvester.scraper.extractor import split_paragraphs
from harvester.scraper.models import Document

MARGIN = 72
PAGE_WIDTH, PAGE_HEIGHT = A4
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

BLUE = colors.HexColor("#2563eb")
RED = colors.HexColor("#dc2626")
NAVY = colors.HexColor("#1e3a5f")
INK = colors.HexColor("#1a1a1a")
BODY = colors.HexColor("#333333")
MUTED = colors.HexColor("#666666")
FAINT = colors.HexColor("#aaaaaa")
RULE = colors.HexColor("#e5e5e5")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class _Bookmark(Flowable):
    """Zero-size flowable that registers an outline entry for its page."""

    def __init__(self, key: str, title: str, level: int = 0) -> None:
        super().__init__()
        self.key = key
        self.title = title
        self.level = level

    def wrap(self, availWidth, availHeight):
        return 0, 0

    def draw(self):
        self.canv.bookmarkPage(self.key)
        self.canv.addOutlineEntry(self.title, self.key, level=self.level, closed=False)


class _RunningHeader:
    """Tracks which source owns the current page for the "continued" header."""

    def __init__(self) -> None:
        self.source: int | None = None
        self.fresh = False

    def first_page(self, canvas, doc) -> None:
        canvas.saveState()
        canvas.setFillColor(colors.HexColor("#fafafa"))
        canvas.rect(0, 0, PAGE_WIDTH, PAGE_HEIGHT, stroke=0, fill=1)
        canvas.restoreState()
        canvas.showOutline()

    def later_pages(self, canvas, doc) -> None:
        if self.fresh:
            self.fresh = False
            return
        if self.source is None:
            return
        canvas.saveState()
        canvas.setFont("Helvetica-Oblique", 8)
        canvas.setFillColor(colors.HexColor("#999999"))
        canvas.drawRightString(PAGE_WIDTH - MARGIN, PAGE_HEIGHT - 40,
                               f"Source {self.source} (continued)")
        canvas.restoreState()


class _SourceMarker(Flowable):
    """Announces that the next page starts source *index*."""

    def __init__(self, header: _RunningHeader, index: int) -> None:
        super().__init__()
        self.header = header
        self.index = index

    def wrap(self, availWidth, availHeight):
        return 0, 0

    def draw(self):
        self.header.source = self.index
        self.header.fresh = True


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    normal = base["Normal"]
    return {
        "cover_heading": ParagraphStyle("CoverHeading", parent=normal, fontName="Helvetica-Bold",
                                        fontSize=28, leading=34, alignment=TA_CENTER, textColor=INK),
        "cover_volume": ParagraphStyle("CoverVolume", parent=normal, fontName="Helvetica-Bold",
                                       fontSize=42, leading=50, alignment=TA_CENTER, textColor=BLUE,
                                       spaceBefore=6, spaceAfter=12),
        "cover_label": ParagraphStyle("CoverLabel", parent=normal, fontName="Helvetica",
                                      fontSize=14, leading=18, alignment=TA_CENTER, textColor=MUTED,
                                      spaceBefore=24),
        "cover_topic": ParagraphStyle("CoverTopic", parent=normal, fontName="Helvetica-Bold",
                                      fontSize=20, leading=26, alignment=TA_CENTER, textColor=INK),
        "cover_meta": ParagraphStyle("CoverMeta", parent=normal, fontName="Helvetica",
                                     fontSize=11, leading=16, alignment=TA_CENTER,
                                     textColor=colors.HexColor("#888888")),
        "toc_title": ParagraphStyle("TocTitle", parent=normal, fontName="Helvetica-Bold",
                                    fontSize=22, leading=28, alignment=TA_CENTER, textColor=INK,
                                    spaceAfter=8),
        "toc_entry": ParagraphStyle("TocEntry", parent=normal, fontName="Helvetica",
                                    fontSize=10, leading=14, textColor=BODY, spaceAfter=6),
        "bar_title": ParagraphStyle("BarTitle", parent=normal, fontName="Helvetica-Bold",
                                    fontSize=11, leading=14, textColor=colors.white),
        "bar_kind": ParagraphStyle("BarKind", parent=normal, fontName="Helvetica",
                                   fontSize=9, leading=12, textColor=colors.HexColor("#93c5fd")),
        "source_title": ParagraphStyle("SourceTitle", parent=normal, fontName="Helvetica-Bold",
                                       fontSize=16, leading=20, textColor=INK,
                                       spaceBefore=14, spaceAfter=10),
        "meta": ParagraphStyle("Meta", parent=normal, fontName="Helvetica",
                               fontSize=9, leading=12, textColor=MUTED),
        "body": ParagraphStyle("Body", parent=normal, fontName="Times-Roman",
                               fontSize=10.5, leading=14.5, alignment=TA_JUSTIFY,
                               textColor=BODY, spaceAfter=7),
        "end": ParagraphStyle("End", parent=normal, fontName="Helvetica-Oblique",
                              fontSize=8, leading=10, alignment=TA_CENTER, textColor=FAINT),
    }


def _cover(volume_number: int, documents: Sequence[Document], query: str, s: dict) -> list:
    generated = datetime.now().strftime("%A, %B %d, %Y %I:%M %p")
    return [
        _Bookmark("title", "Title Page"),
        Spacer(1, 110),
        Paragraph("RESEARCH COMPILATION", s["cover_heading"]),
        Paragraph(f"Volume {volume_number}", s["cover_volume"]),
        HRFlowable(width=295, thickness=3, color=BLUE, spaceBefore=6, spaceAfter=6),
        Paragraph("Research Topic:", s["cover_label"]),
        Paragraph(f"&quot;{escape(query)}&quot;", s["cover_topic"]),
        Spacer(1, 90),
        Paragraph(f"Generated: {generated}", s["cover_meta"]),
        Paragraph(f"Total Sources: {len(documents)}", s["cover_meta"]),
        PageBreak(),
    ]


def _table_of_contents(documents: Sequence[Document], s: dict) -> list:
    story: list = [
        _Bookmark("toc", "Table of Contents"),
        Paragraph("TABLE OF CONTENTS", s["toc_title"]),
        HRFlowable(width="100%", thickness=1, color=RULE, spaceAfter=14),
    ]
    for idx, doc in enumerate(documents, 1):
        color, label = ("#dc2626", "PDF") if doc.is_pdf else ("#2563eb", "WEB")
        story.append(Paragraph(
            f'<font name="Helvetica-Bold" color="{color}">{idx}. [{label}]</font> '
            f"{escape(_truncate(doc.title, 55))}",
            s["toc_entry"],
        ))
    return story


def _source(idx: int, total: int, doc: Document, header: _RunningHeader, s: dict) -> list:
    kind = "PDF DOCUMENT" if doc.is_pdf else "WEB ARTICLE"
    bar = Table(
        [[Paragraph(f"SOURCE {idx} of {total}", s["bar_title"])],
         [Paragraph(kind, s["bar_kind"])]],
        colWidths=[CONTENT_WIDTH],
    )
    bar.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), NAVY),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, 0), 10),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 10),
    ]))

    url_text = escape(_truncate(doc.url, 70))
    href = escape(doc.url, {'"': "&quot;"})
    meta = Table(
        [[Paragraph(f'URL: <link href="{href}">{url_text}</link>', s["meta"])],
         [Paragraph(f"Date: {doc.date:%Y-%m-%d}  |  Words: {doc.word_count:,}", s["meta"])]],
        colWidths=[CONTENT_WIDTH],
    )
    meta.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f5f5f5")),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))

    story: list = [_SourceMarker(header, idx), PageBreak()]
    if idx == 1:
        story.append(_Bookmark("sources", "Sources"))
    story += [
        _Bookmark(f"source-{idx}", f"{idx}. {_truncate(doc.title, 35)}", level=1),
        bar,
        Paragraph(escape(doc.title), s["source_title"]),
        meta,
        Spacer(1, 14),
    ]
    story += [Paragraph(escape(para), s["body"]) for para in split_paragraphs(doc.content)]
    story += [
        Spacer(1, 10),
        HRFlowable(width="100%", thickness=1, color=RULE, spaceAfter=4),
        Paragraph(f"End of Source {idx}", s["end"]),
    ]
    return story


def write_pdf_volume(path: Path, volume_number: int, documents: Sequence[Document], query: str) -> Path:
    """Render *documents* into a research-compilation PDF at *path*."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    pdf = SimpleDocTemplate(
        str(path),
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"{query} - Research Compilation Volume {volume_number}",
        author="Research Bot",
        subject=query,
        keywords=query,
    )
    s = _styles()
    header = _RunningHeader()

    story = _cover(volume_number, documents, query, s)
    story += _table_of_contents(documents, s)
    for idx, doc in enumerate(documents, 1):
        story += _source(idx, len(documents), doc, header, s)

    pdf.build(story, onFirstPage=header.first_page, onLaterPages=header.later_pages)
    return path
