"""Unit (apartment) endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from condo_parcels.schemas.unit import UnitCreate, UnitResponse
from condo_parcels.services.remote_store import (
    DocumentConflictError,
    RemoteRejectedError,
    RemoteUnavailableError,
)
from condo_parcels.services.units import UnitNotFoundError

from ..dependencies import UnitServiceDep, remote_failed, remote_unavailable

router = APIRouter(prefix="/units", tags=["units"])


@router.get("/", response_model=list[UnitResponse])
async def search_units(
    units: UnitServiceDep,
    prefix: str = "",
    limit: int = 20,
) -> list[dict]:
    """Search units by apartment number prefix."""
    try:
        return await units.search_units(prefix, limit=limit)
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc


@router.get("/{unit_id}", response_model=UnitResponse)
async def get_unit(unit_id: str, units: UnitServiceDep) -> dict:
    """Get a specific unit by apartment number."""
    try:
        return await units.get_unit(unit_id)
    except UnitNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Unit not found"
        ) from exc
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc


@router.post("/", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_unit(unit_data: UnitCreate, units: UnitServiceDep) -> dict:
    """Register a new unit."""
    try:
        return await units.create_unit(unit_data)
    except DocumentConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Unit already exists"
        ) from exc
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc


@router.delete(
    "/{unit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_unit(unit_id: str, units: UnitServiceDep) -> Response:
    """Remove a unit."""
    try:
        await units.delete_unit(unit_id)
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
