# src/condo_parcels/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .connectivity import router as connectivity_router
from .packages import router as packages_router
from .photos import router as photos_router
from .sync import router as sync_router
from .units import router as units_router
from .users import router as users_router

__all__ = [
    "connectivity_router",
    "packages_router",
    "photos_router",
    "sync_router",
    "units_router",
    "users_router",
]
