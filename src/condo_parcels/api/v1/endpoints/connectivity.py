"""Connectivity reporting endpoints used by the front-desk client."""

from __future__ import annotations

from fastapi import APIRouter

from condo_parcels.schemas.sync import ConnectivityResponse, ConnectivityUpdate
from condo_parcels.services.local_store import LocalStorageError

from ..dependencies import ConnectivityDep, storage_unavailable

router = APIRouter(prefix="/connectivity", tags=["connectivity"])


@router.get("/", response_model=ConnectivityResponse)
async def get_connectivity(connectivity: ConnectivityDep) -> ConnectivityResponse:
    """Return the last reported connectivity state."""
    return ConnectivityResponse(online=connectivity.is_online)


@router.post("/", response_model=ConnectivityResponse)
async def report_connectivity(
    update: ConnectivityUpdate,
    connectivity: ConnectivityDep,
) -> ConnectivityResponse:
    """Record an online/offline event; going online drains the queue."""
    try:
        result = await connectivity.set_online(update.online)
    except LocalStorageError as exc:
        raise storage_unavailable(exc) from exc
    return ConnectivityResponse(online=connectivity.is_online, sync=result)
