"""Enrichment routes used by the audio-feature worker."""

from fastapi import APIRouter, Depends, Query
from moodify.logging import log_api_request
from moodify.models.track import AudioFeaturesUpdate, StatusUpdate, Track
from moodify.routes.dependencies import ERROR_RESPONSES, get_catalog
from moodify.services.catalog import CatalogService

router = APIRouter(prefix="/enrichment", tags=["enrichment"], responses=ERROR_RESPONSES)


@router.get("/unprocessed", response_model=list[Track])
async def list_unprocessed(
    limit: int | None = Query(None, ge=1, le=1000),
    catalog: CatalogService = Depends(get_catalog),
):
    """List tracks waiting for audio features, oldest first."""
    return catalog.enrichment.list_unprocessed(limit)


@router.post("/claim", response_model=list[Track])
async def claim_unprocessed(
    limit: int | None = Query(None, ge=1, le=1000),
    catalog: CatalogService = Depends(get_catalog),
):
    """Claim the oldest unprocessed tracks, moving them to processing."""
    log_api_request("claim_unprocessed", limit=limit)
    return catalog.enrichment.claim_unprocessed(limit)


@router.put("/{spotify_id}/features", response_model=Track)
async def update_audio_features(spotify_id: str, request: AudioFeaturesUpdate, catalog: CatalogService = Depends(get_catalog)):
    """Write back audio features together with a processed/failed status."""
    log_api_request("update_audio_features", spotify_id=spotify_id, status=request.audio_features_status)
    features = request.model_dump(exclude={"audio_features_status"})
    return catalog.enrichment.update_audio_features(spotify_id, features, request.audio_features_status)


@router.put("/{spotify_id}/status", response_model=Track)
async def update_status(spotify_id: str, request: StatusUpdate, catalog: CatalogService = Depends(get_catalog)):
    """Set the processing status of a track."""
    log_api_request("update_status", spotify_id=spotify_id, status=request.audio_features_status)
    return catalog.enrichment.update_status(spotify_id, request.audio_features_status)
