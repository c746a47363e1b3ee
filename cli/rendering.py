"""Utilities for rendering the output directory in the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import List


def list_files(root: Path) -> List[Path]:
    """Return every file under *root*, sorted, skipping hidden and ``.part`` files."""
    root = Path(root)
    if not root.exists():
        return []
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.suffix != ".part" and not p.name.startswith(".")
    )


def render_file_tree(root: Path) -> str:
    """Render *root* and everything below it as an ASCII tree.

    Directories come before files; hidden temp files are left out.
    """
    root = Path(root)
    if not root.exists():
        return f"{root} (missing)"

    lines = [f"{_get_icon(root)} {root.name or root}"]

    def _render(directory: Path, prefix: str) -> None:
        children = sorted(
            (p for p in directory.iterdir() if not p.name.startswith(".")),
            key=lambda p: (not p.is_dir(), p.name.lower()),
        )
        count = len(children)
        for i, child in enumerate(children):
            is_last = i == count - 1
            connector = "└── " if is_last else "├── "
            label = child.name
            if child.is_file():
                label += f"  ({_human_size(child.stat().st_size)})"
            lines.append(f"{prefix}{connector}{_get_icon(child)} {label}")
            if child.is_dir():
                _render(child, prefix + ("    " if is_last else "│   "))

    _render(root, "")
    return "\n".join(lines)


def _human_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{round(size / 1024)} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _get_icon(path: Path) -> str:
    if path.is_dir():
        return "📁"
    icons = {
        ".pdf": "📕",
        ".txt": "📝",
        ".html": "🌐",
        ".png": "🖼️",
    }
    return icons.get(path.suffix.lower(), "📄")
