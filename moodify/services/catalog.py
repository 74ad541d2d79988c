"""Catalog service wiring the ingestion engine around one database handle."""

from moodify.services.albums import AlbumResolver
from moodify.services.bulk import BulkIngestor
from moodify.services.database import DatabaseService
from moodify.services.enrichment import EnrichmentService
from moodify.services.tracks import TrackWriter
from pathlib import Path


class CatalogService:
    """Entry point to the engine: albums, tracks, bulk ingestion and enrichment.

    All components share the ``DatabaseService`` passed in; nothing is read
    from module-level state.
    """

    def __init__(self, db: DatabaseService, bulk_max_attempts: int | None = None):
        self.db = db
        self.albums = AlbumResolver(db)
        self.tracks = TrackWriter(db, self.albums)
        self.bulk = BulkIngestor(db, max_attempts=bulk_max_attempts)
        self.enrichment = EnrichmentService(db)

    @classmethod
    def open(cls, db_path: str | Path, timeout: float | None = None, bulk_max_attempts: int | None = None) -> "CatalogService":
        """Create the database (if needed) at ``db_path`` and wrap it."""
        return cls(DatabaseService(db_path, timeout=timeout), bulk_max_attempts=bulk_max_attempts)
