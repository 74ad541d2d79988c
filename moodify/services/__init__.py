"""Ingestion engine services for the Moodify catalog backend."""

from moodify.services.albums import AlbumResolver
from moodify.services.bulk import BulkIngestor
from moodify.services.catalog import CatalogService
from moodify.services.database import DatabaseService
from moodify.services.enrichment import EnrichmentService, EnrichmentStatus
from moodify.services.palette import PaletteShape, normalize_palette
from moodify.services.tracks import TrackWriter

__all__ = [
    "AlbumResolver",
    "BulkIngestor",
    "CatalogService",
    "DatabaseService",
    "EnrichmentService",
    "EnrichmentStatus",
    "PaletteShape",
    "TrackWriter",
    "normalize_palette",
]
