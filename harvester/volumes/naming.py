"""File and directory names derived from query strings."""

from __future__ import annotations

import re
from pathlib import Path

_UNSAFE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def safe_name(text: str, max_len: int = 50) -> str:
    """Replace every non-alphanumeric character with ``_`` and truncate."""
    return _UNSAFE.sub("_", text)[:max_len]


def volume_stem(query: str) -> str:
    """Like :func:`safe_name` but with underscore runs collapsed and trimmed."""
    stem = re.sub(r"_+", "_", _UNSAFE.sub("_", query)).strip("_")
    return stem or "Research"


def volume_path(output_dir: Path, query: str, number: int, fmt: str) -> Path:
    return Path(output_dir) / f"{volume_stem(query)}_Research_File_{number}.{fmt}"


def next_volume_number(output_dir: Path, query: str, fmt: str) -> int:
    """Return one past the highest existing volume number for *query* and *fmt*."""
    stem = volume_stem(query)
    pattern = re.compile(rf"{re.escape(stem)}_Research_File_(\d+)\.{re.escape(fmt)}")
    highest = 0
    for path in Path(output_dir).glob(f"{stem}_Research_File_*.{fmt}"):
        match = pattern.fullmatch(path.name)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1
