# src/condo_parcels/main.py
"""Main entry point for the Condo Parcels application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from condo_parcels.api.v1 import (
    connectivity_router,
    packages_router,
    photos_router,
    sync_router,
    units_router,
    users_router,
)
from condo_parcels.core.settings import settings
from condo_parcels.db.session import create_tables
from condo_parcels.services.connectivity import get_connectivity_monitor
from condo_parcels.services.remote_store import get_remote_store

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Front-desk package registration, notification and pickup",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(packages_router, prefix="/api/v1")
app.include_router(photos_router, prefix="/api/v1")
app.include_router(units_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(sync_router, prefix="/api/v1")
app.include_router(connectivity_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    create_tables()
    if settings.connectivity_probe_enabled:
        monitor = get_connectivity_monitor()
        await monitor.start()
        logger.info("Connectivity probe started")
        app.state.connectivity_monitor = monitor
    else:
        app.state.connectivity_monitor = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    monitor = getattr(app.state, "connectivity_monitor", None)
    if monitor:
        await monitor.stop()
    await get_remote_store().close()

@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}

@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Front-desk package registration, notification and pickup",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("condo_parcels.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
