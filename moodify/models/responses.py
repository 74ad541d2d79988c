"""Response models for API endpoints."""

from moodify.models.album import Album
from moodify.models.track import Track
from pydantic import BaseModel


class TrackCreateResponse(BaseModel):
    """Response when creating a single track."""

    created: bool
    record: Track
    message: str | None = None


class AlbumCreateResponse(BaseModel):
    """Response when creating an album."""

    created: bool
    record: Album
    message: str | None = None


class BulkTrackRef(BaseModel):
    """Internal and external id of a track touched by a bulk request."""

    id: int
    spotify_id: str


class BulkInserted(BaseModel):
    count: int
    ids: list[BulkTrackRef]


class BulkSkipped(BaseModel):
    count: int | None  # None when a concurrent conflict left the split unknown
    records: list[BulkTrackRef]


class BulkTotal(BaseModel):
    processed: int
    inserted: int
    skipped: int | None


class BulkResult(BaseModel):
    """Response for a bulk track submission."""

    success: bool
    partial: bool = False
    message: str | None = None
    inserted: BulkInserted
    skipped: BulkSkipped
    total: BulkTotal


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: dict | list | str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    uptime_seconds: int
