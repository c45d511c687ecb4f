# src/condo_parcels/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    connectivity_router,
    packages_router,
    photos_router,
    sync_router,
    units_router,
    users_router,
)

__all__ = [
    "connectivity_router",
    "packages_router",
    "photos_router",
    "sync_router",
    "units_router",
    "users_router",
]
