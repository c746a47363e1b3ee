"""Scraper package — web fetch, PDF download & content extraction."""

from harvester.scraper.downloader import DownloadError, download_pdf, is_valid_pdf
from harvester.scraper.extractor import clean_text, extract_content
from harvester.scraper.fetcher import fetch_url
from harvester.scraper.models import CleanPage, Document, RawPage
from harvester.scraper.pdf_text import extract_pdf

__all__ = [
    "fetch_url",
    "extract_content",
    "clean_text",
    "download_pdf",
    "is_valid_pdf",
    "extract_pdf",
    "DownloadError",
    "RawPage",
    "CleanPage",
    "Document",
]
