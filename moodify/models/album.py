"""Album models for the catalog API."""

from datetime import datetime
from pydantic import BaseModel
from typing import Any


class Album(BaseModel):
    """Full album model with database fields."""

    id: int
    spotify_id: str
    album: str
    artists: str
    album_cover: str = ""
    colour_palette: Any = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AlbumCreate(BaseModel):
    """Model for creating an album directly."""

    spotify_id: str | None = None
    album: str | None = None
    artists: str | list[str] | None = None
    album_cover: str | None = None
    colour_palette: Any = None


class AlbumUpdate(BaseModel):
    """Model for patching album fields."""

    album: str | None = None
    artists: str | list[str] | None = None
    album_cover: str | None = None
    colour_palette: Any = None
