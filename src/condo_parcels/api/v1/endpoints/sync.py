"""Pending queue inspection and manual sync endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from condo_parcels.schemas.sync import (
    PendingOperationResponse,
    SyncResult,
    SyncStatusResponse,
)
from condo_parcels.services.local_store import LocalStorageError

from ..dependencies import ConnectivityDep, LocalStoreDep, SyncEngineDep, storage_unavailable

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status(
    local_store: LocalStoreDep,
    sync_engine: SyncEngineDep,
    connectivity: ConnectivityDep,
) -> SyncStatusResponse:
    """Summarize queue health for the offline banner."""
    return SyncStatusResponse(
        online=connectivity.is_online,
        pending=await local_store.count_pending(),
        dead_letters=await local_store.count_dead_letters(),
        drain_in_progress=sync_engine.drain_in_progress,
    )


@router.get("/pending", response_model=list[PendingOperationResponse])
async def list_pending(local_store: LocalStoreDep) -> list[PendingOperationResponse]:
    """List queued operations, oldest first."""
    records = await local_store.list_pending_operations()
    return [PendingOperationResponse.model_validate(record) for record in records]


@router.delete(
    "/pending/{operation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def remove_pending(operation_id: int, local_store: LocalStoreDep) -> Response:
    """Drop a queued operation without applying it."""
    await local_store.remove_operation(operation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/dead-letters", response_model=list[PendingOperationResponse])
async def list_dead_letters(local_store: LocalStoreDep) -> list[PendingOperationResponse]:
    """List operations parked after too many failed attempts."""
    records = await local_store.list_dead_letters()
    return [PendingOperationResponse.model_validate(record) for record in records]


@router.post("/dead-letters/{operation_id}/requeue", status_code=status.HTTP_200_OK)
async def requeue_dead_letter(operation_id: int, local_store: LocalStoreDep) -> dict[str, str]:
    """Give a dead-lettered operation a fresh attempt budget."""
    if not await local_store.requeue_operation(operation_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dead letter not found"
        )
    return {"status": "requeued"}


@router.post("/run", response_model=SyncResult)
async def run_sync(sync_engine: SyncEngineDep) -> SyncResult:
    """Drain the pending queue now."""
    try:
        return await sync_engine.sync_pending_items()
    except LocalStorageError as exc:
        raise storage_unavailable(exc) from exc
