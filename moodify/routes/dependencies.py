"""FastAPI dependencies shared by the routers."""

from fastapi import Request
from moodify.models.responses import ErrorResponse
from moodify.services.catalog import CatalogService

# Error bodies produced by the catalog exception handlers
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Unknown Spotify id"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}


def get_catalog(request: Request) -> CatalogService:
    """Get the catalog service created by the application lifespan."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("Catalog not initialized. Create the app with create_app().")
    return catalog
