"""In-memory batching of documents into volumes."""

from __future__ import annotations

from pathlib import Path
from typing import List

from harvester.scraper.models import Document
from harvester.volumes.naming import next_volume_number, volume_path
from harvester.volumes.pdf_writer import write_pdf_volume
from harvester.volumes.text_writer import write_text_volume

FORMATS = ("pdf", "txt")


def write_volume(
    output_dir: Path,
    query: str,
    volume_number: int,
    documents: List[Document],
    fmt: str = "pdf",
) -> Path:
    """Write *documents* as volume *volume_number* in *fmt* (``pdf``/``txt``)."""
    if fmt not in FORMATS:
        raise ValueError(f"Unknown volume format {fmt!r}; expected one of {FORMATS}")
    path = volume_path(output_dir, query, volume_number, fmt)
    if fmt == "pdf":
        write_pdf_volume(path, volume_number, documents, query)
    else:
        write_text_volume(path, volume_number, documents, query)

    size_kb = round(path.stat().st_size / 1024)
    print(f"[volume] Saved {path.name} ({size_kb} KB, {len(documents)} source(s))")
    return path


class VolumeBuffer:
    """Collect documents and flush them as a volume every *batch_size* items.

    Volume numbers continue after the highest existing file for the same
    query, so reruns never overwrite earlier volumes.
    """

    def __init__(self, query: str, output_dir: Path, batch_size: int = 5, fmt: str = "pdf") -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if fmt not in FORMATS:
            raise ValueError(f"Unknown volume format {fmt!r}; expected one of {FORMATS}")
        self.query = query
        self.output_dir = Path(output_dir)
        self.batch_size = batch_size
        self.fmt = fmt
        self.volumes: List[Path] = []
        self._pending: List[Document] = []

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, doc: Document) -> Path | None:
        """Buffer *doc*; returns the volume path when this triggered a flush."""
        self._pending.append(doc)
        if len(self._pending) >= self.batch_size:
            return self.flush()
        return None

    def flush(self) -> Path | None:
        if not self._pending:
            return None
        number = next_volume_number(self.output_dir, self.query, self.fmt)
        path = write_volume(self.output_dir, self.query, number, self._pending, self.fmt)
        self._pending = []
        self.volumes.append(path)
        return path

    def close(self) -> Path | None:
        """Flush whatever is left over."""
        return self.flush()
