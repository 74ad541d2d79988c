"""Album routes for the catalog API."""

from fastapi import APIRouter, Depends, Response
from moodify.logging import log_api_request
from moodify.models.album import Album, AlbumCreate, AlbumUpdate
from moodify.models.responses import AlbumCreateResponse
from moodify.models.track import Track
from moodify.routes.dependencies import ERROR_RESPONSES, get_catalog
from moodify.services.catalog import CatalogService

router = APIRouter(prefix="/albums", tags=["albums"], responses=ERROR_RESPONSES)


@router.post("", response_model=AlbumCreateResponse, status_code=201)
async def create_album(request: AlbumCreate, response: Response, catalog: CatalogService = Depends(get_catalog)):
    """Create an album; an already stored Spotify id returns 200 with ``created: false``."""
    log_api_request("create_album", spotify_id=request.spotify_id)
    result = catalog.albums.create_album(request.model_dump(exclude_none=True))
    if not result["created"]:
        response.status_code = 200
    return result


@router.patch("/{spotify_id}", response_model=Album)
async def update_album(spotify_id: str, request: AlbumUpdate, catalog: CatalogService = Depends(get_catalog)):
    """Patch album fields."""
    log_api_request("update_album", spotify_id=spotify_id)
    return catalog.albums.update_album(spotify_id, request.model_dump(exclude_unset=True))


@router.get("/{spotify_id}/tracks", response_model=list[Track])
async def get_album_tracks(spotify_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Get the tracks linked to an album (empty when the album is unknown)."""
    return catalog.tracks.get_tracks_by_album(spotify_id)
