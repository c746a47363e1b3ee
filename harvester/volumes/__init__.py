"""Volumes package — batch scraped documents into text or PDF files."""

from harvester.volumes.buffer import FORMATS, VolumeBuffer, write_volume
from harvester.volumes.naming import next_volume_number, safe_name, volume_path, volume_stem

__all__ = [
    "FORMATS",
    "VolumeBuffer",
    "write_volume",
    "safe_name",
    "volume_stem",
    "volume_path",
    "next_volume_number",
]
