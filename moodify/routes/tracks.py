"""Track routes for the catalog API."""

from fastapi import APIRouter, Depends, Response
from moodify.errors import NotFoundError
from moodify.logging import log_api_request
from moodify.models.responses import BulkResult, TrackCreateResponse
from moodify.models.track import Track, TrackCreate, TrackLookupRequest, TrackUpdate
from moodify.routes.dependencies import ERROR_RESPONSES, get_catalog
from moodify.services.catalog import CatalogService

router = APIRouter(prefix="/tracks", tags=["tracks"], responses=ERROR_RESPONSES)


@router.post("", response_model=TrackCreateResponse, status_code=201)
async def create_track(request: TrackCreate, response: Response, catalog: CatalogService = Depends(get_catalog)):
    """Create a track, creating its album first if needed.

    Returns 201 for a new track and 200 with ``created: false`` when the
    Spotify id is already stored.
    """
    log_api_request("create_track", spotify_id=request.spotify_id)
    result = catalog.tracks.create_track(request.model_dump(exclude_none=True))
    if not result["created"]:
        response.status_code = 200
    return result


@router.post("/bulk", response_model=BulkResult)
async def create_bulk_tracks(request: list[TrackCreate], catalog: CatalogService = Depends(get_catalog)):
    """Create many tracks in one transaction, skipping ids that already exist."""
    log_api_request("create_bulk_tracks", count=len(request))
    return catalog.bulk.create_bulk([item.model_dump(exclude_none=True) for item in request])


@router.post("/lookup", response_model=list[Track])
async def get_tracks(request: TrackLookupRequest, catalog: CatalogService = Depends(get_catalog)):
    """Get several tracks by Spotify id."""
    return catalog.tracks.get_tracks(request.ids)


@router.get("/{spotify_id}", response_model=Track)
async def get_track(spotify_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Get a single track by Spotify id."""
    track = catalog.tracks.get_track(spotify_id)
    if not track:
        raise NotFoundError(f"Track with spotify_id {spotify_id} not found", detail={"spotify_id": spotify_id})
    return track


@router.patch("/{spotify_id}", response_model=Track)
async def update_track(spotify_id: str, request: TrackUpdate, catalog: CatalogService = Depends(get_catalog)):
    """Patch descriptive fields of a track."""
    log_api_request("update_track", spotify_id=spotify_id)
    return catalog.tracks.update_track(spotify_id, request.model_dump(exclude_unset=True))
