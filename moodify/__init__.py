"""Moodify catalog backend: track and album ingestion with colour palettes."""

__version__ = "1.0.0"
