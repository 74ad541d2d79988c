"""FastAPI backend for the Moodify catalog.

This is the main entry point for the ingestion API. It provides REST
endpoints for track and album creation, bulk ingestion and the enrichment
status workflow.
"""

import sqlite3
import time
from contextlib import asynccontextmanager
from eliot import log_message
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from moodify import __version__, config
from moodify.errors import CatalogError, ErrorKind
from moodify.logging import api_logger, log_error, setup_logging
from moodify.models.responses import HealthResponse
from moodify.routes.albums import router as albums_router
from moodify.routes.enrichment import router as enrichment_router
from moodify.routes.tracks import router as tracks_router
from moodify.services.catalog import CatalogService
from pathlib import Path

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PERSISTENCE: 500,
}


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Translate engine errors to responses by their kind."""
    status_code = STATUS_BY_KIND[exc.kind]
    if exc.kind is ErrorKind.PERSISTENCE:
        log_error(api_logger, exc, path=request.url.path)
        return JSONResponse(status_code=status_code, content={"error": "Error writing catalog data", "detail": None})
    return JSONResponse(status_code=status_code, content={"error": exc.message, "detail": exc.detail})


async def store_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """Unclassified store failures surface as a generic error."""
    log_error(api_logger, exc, path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Error accessing catalog data", "detail": None})


def create_app(db_path: str | Path | None = None, bulk_max_attempts: int | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        db_path: SQLite file to serve (defaults to MOODIFY_DB_PATH)
        bulk_max_attempts: Override for MOODIFY_BULK_MAX_ATTEMPTS

    Returns:
        Configured FastAPI app; the catalog is opened in the lifespan handler
    """
    db_path = db_path or config.DB_PATH

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        app.state.started_at = time.time()
        app.state.catalog = CatalogService.open(db_path, bulk_max_attempts=bulk_max_attempts)

        log_message(message_type="application_ready", db_path=str(db_path), message=f"Moodify backend v{__version__} started")

        yield

        log_message(message_type="application_shutdown", message="Moodify backend shutting down")

    app = FastAPI(
        title="Moodify Catalog API",
        description="Track and album ingestion for the Moodify colour palette catalog",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(sqlite3.Error, store_error_handler)

    app.include_router(tracks_router, prefix="/api")
    app.include_router(albums_router, prefix="/api")
    app.include_router(enrichment_router, prefix="/api")

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        try:
            request.app.state.catalog.db.ping()
            db_status = "connected"
        except sqlite3.Error:
            db_status = "error"

        started_at = getattr(request.app.state, "started_at", None)
        uptime = int(time.time() - started_at) if started_at else 0

        return {
            "status": "healthy",
            "version": __version__,
            "database": db_status,
            "uptime_seconds": uptime,
        }

    return app


def run():
    """Entry point for running the server."""
    import uvicorn

    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    uvicorn.run(
        "moodify.main:create_app",
        factory=True,
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.RELOAD,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
