"""Centralised settings for the harvester.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

DEFAULT_ENGINES = "ddg_html,ddg_lite,startpage,brave,mojeek,yandex"
DEFAULT_DOWNLOAD_METHODS = "http,cookies,curl,browser"


def _env_int(name: str, default: int) -> int:
    """Read an integer variable; unparsable or empty values yield *default*."""
    try:
        value = int(os.environ.get(name, ""))
    except ValueError:
        return default
    return value or default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, ""))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str, sep: str = ",") -> list[str]:
    raw = os.environ.get(name) or default
    return [item.strip() for item in raw.split(sep) if item.strip()]


def _default_tasks() -> list[str]:
    """``TASKS`` (``;``-separated) wins over ``INPUT_QUERY``."""
    raw = os.environ.get("TASKS") or os.environ.get("INPUT_QUERY") or "Renewable Energy"
    return [t.strip() for t in raw.split(";") if t.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    tasks: list[str] = field(default_factory=_default_tasks)
    max_files: int = field(default_factory=lambda: _env_int("MAX_FILES", 10))
    harvest_target: int = field(default_factory=lambda: _env_int("INPUT_TARGET", 30))
    mode: str = field(
        default_factory=lambda: os.environ.get("MODE", "compile").strip().lower()
    )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    output_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("OUTPUT_DIR", Path.cwd() / "downloads")
        ).resolve()
    )
    output_format: str = field(
        default_factory=lambda: os.environ.get("OUTPUT_FORMAT", "pdf").strip().lower()
    )
    batch_size: int = field(default_factory=lambda: _env_int("BATCH_SIZE", 5))
    debug_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("DEBUG_DIR", Path.cwd() / "debug_output")
        ).resolve()
    )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    search_backend: str = field(
        default_factory=lambda: os.environ.get("SEARCH_BACKEND", "browser").strip().lower()
    )
    search_engines: list[str] = field(
        default_factory=lambda: _env_list("SEARCH_ENGINES", DEFAULT_ENGINES)
    )
    filetype_pdf: bool = field(default_factory=lambda: _env_bool("FILETYPE_PDF", True))
    pdf_links_only: bool = field(
        default_factory=lambda: _env_bool("PDF_LINKS_ONLY", False)
    )
    engine_delay_min: float = field(
        default_factory=lambda: _env_float("ENGINE_DELAY_MIN", 1.0)
    )
    engine_delay_max: float = field(
        default_factory=lambda: _env_float("ENGINE_DELAY_MAX", 3.0)
    )
    search_retry_max: int = field(default_factory=lambda: _env_int("SEARCH_RETRY_MAX", 3))
    search_retry_base_delay: float = field(
        default_factory=lambda: _env_float("SEARCH_RETRY_BASE_DELAY", 2.0)
    )
    headless: bool = field(default_factory=lambda: _env_bool("HEADLESS", True))

    # ------------------------------------------------------------------
    # Scraper / downloader
    # ------------------------------------------------------------------
    download_methods: list[str] = field(
        default_factory=lambda: _env_list("DOWNLOAD_METHODS", DEFAULT_DOWNLOAD_METHODS)
    )
    concurrency: int = field(default_factory=lambda: _env_int("CONCURRENCY", 3))
    rate_limit_delay: float = field(
        default_factory=lambda: _env_float("RATE_LIMIT_DELAY", 1.0)
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("REQUEST_TIMEOUT", 30.0)
    )
    download_timeout: float = field(
        default_factory=lambda: _env_float("DOWNLOAD_TIMEOUT", 15.0)
    )
    min_pdf_bytes: int = field(default_factory=lambda: _env_int("MIN_PDF_BYTES", 1024))
    max_pdf_bytes: int = field(
        default_factory=lambda: _env_int("MAX_PDF_BYTES", 50 * 1024 * 1024)
    )
    min_words: int = field(default_factory=lambda: _env_int("MIN_WORDS", 50))

    def ensure_output_dir(self) -> None:
        """Create the output directory if it does not exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from harvester.config import settings
settings = Settings()
