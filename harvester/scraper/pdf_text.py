"""PDF text extraction with ``pypdf``."""

from __future__ import annotations

from pathlib import Path

_PLACEHOLDER_TITLES = {"untitled", "untitled document", "none"}


def extract_pdf(path: str | Path) -> tuple[str, str]:
    """Return ``(title, text)`` extracted from the PDF at *path*.

    The title comes from the document metadata when present and not a
    generator placeholder such as "untitled"; otherwise the file stem is
    used.  Pages without extractable text are skipped.

    Raises:
        FileNotFoundError: If *path* does not exist.
        pypdf.errors.PdfReadError: If the file cannot be parsed.
    """
    import pypdf  # noqa: PLC0415 — lazy import keeps startup fast

    pdf_path = Path(path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")

    reader = pypdf.PdfReader(str(pdf_path))
    pages: list[str] = []
    for page in reader.pages:
        text = page.extract_text() or ""
        if text.strip():
            pages.append(text)

    title = ""
    if reader.metadata is not None:
        title = (reader.metadata.title or "").strip()
    if title.lower() in _PLACEHOLDER_TITLES:
        title = ""

    return title or pdf_path.stem, "\n\n".join(pages)
