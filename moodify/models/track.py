"""Track models for the catalog API."""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any


class AudioFeatures(BaseModel):
    """Audio-feature attributes filled in by the enrichment pipeline."""

    album_name: str | None = None
    track_name: str | None = None
    popularity: int | None = Field(None, ge=0, le=100)
    duration_ms: int | None = Field(None, ge=0)
    explicit: bool | None = None
    danceability: float | None = None
    energy: float | None = None
    key: int | None = Field(None, ge=-1, le=11)
    loudness: float | None = None
    mode: int | None = Field(None, ge=0, le=1)
    speechiness: float | None = None
    acousticness: float | None = None
    instrumentalness: float | None = None
    liveness: float | None = None
    valence: float | None = None
    tempo: float | None = None
    time_signature: int | None = None
    track_genre: str | None = None


class Track(AudioFeatures):
    """Full track model with database fields."""

    id: int
    spotify_id: str
    title: str
    artists: str
    album: str = ""
    album_cover: str = ""
    song_url: str = ""
    preview_url: str | None = None
    colour_palette: Any = []
    album_id: int | None = None
    audio_features_status: str = "unprocessed"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class TrackCreate(AudioFeatures):
    """Model for creating a track.

    Required fields are checked by the engine so that a missing field is
    reported the same way for HTTP and direct callers.
    """

    spotify_id: str | None = None
    title: str | None = None
    artists: str | list[str] | None = None
    album: str | None = None
    album_cover: str | None = None
    song_url: str | None = None
    preview_url: str | None = None
    colour_palette: Any = None
    album_spotify_id: str | None = None
    album_colour_palette: Any = None
    audio_features_status: str | None = None


class TrackUpdate(BaseModel):
    """Model for patching descriptive track fields."""

    title: str | None = None
    artists: str | list[str] | None = None
    album: str | None = None
    album_cover: str | None = None
    song_url: str | None = None
    preview_url: str | None = None
    colour_palette: Any = None


class TrackLookupRequest(BaseModel):
    """Request body for fetching several tracks at once."""

    ids: list[str]


class AudioFeaturesUpdate(AudioFeatures):
    """Feature write-back from the enrichment pipeline."""

    audio_features_status: str = "processed"


class StatusUpdate(BaseModel):
    """Processing status change without feature data."""

    audio_features_status: str
