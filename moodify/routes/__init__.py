"""API routes for the Moodify catalog backend."""

from moodify.routes.albums import router as albums_router
from moodify.routes.enrichment import router as enrichment_router
from moodify.routes.tracks import router as tracks_router

__all__ = [
    "albums_router",
    "enrichment_router",
    "tracks_router",
]
