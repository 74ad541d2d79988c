"""Pydantic models for the Moodify catalog API."""

from moodify.models.album import Album, AlbumCreate, AlbumUpdate
from moodify.models.responses import (
    AlbumCreateResponse,
    BulkResult,
    ErrorResponse,
    HealthResponse,
    TrackCreateResponse,
)
from moodify.models.track import (
    AudioFeatures,
    AudioFeaturesUpdate,
    StatusUpdate,
    Track,
    TrackCreate,
    TrackLookupRequest,
    TrackUpdate,
)

__all__ = [
    # Track models
    "AudioFeatures",
    "AudioFeaturesUpdate",
    "StatusUpdate",
    "Track",
    "TrackCreate",
    "TrackLookupRequest",
    "TrackUpdate",
    # Album models
    "Album",
    "AlbumCreate",
    "AlbumUpdate",
    # Response models
    "AlbumCreateResponse",
    "BulkResult",
    "ErrorResponse",
    "HealthResponse",
    "TrackCreateResponse",
]
