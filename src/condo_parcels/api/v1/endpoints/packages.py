"""Package workflow endpoints: registration, triage, notification and pickup."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Response, status

from condo_parcels.schemas.package import (
    NotificationResponse,
    PackageRegister,
    PackageResponse,
    PackageStats,
    PackageStatus,
    PackageTriage,
    PickupRequest,
    PickupResponse,
    RegistrationResponse,
)
from condo_parcels.services.local_store import InvalidPhotoError, LocalStorageError
from condo_parcels.services.package_workflow import (
    InvalidStatusTransition,
    PackageNotFoundError,
)
from condo_parcels.services.remote_store import (
    DocumentNotFoundError,
    RemoteRejectedError,
    RemoteUnavailableError,
)

from ..dependencies import (
    NotificationDep,
    SyncEngineDep,
    WorkflowDep,
    remote_failed,
    remote_unavailable,
    storage_unavailable,
)

router = APIRouter(prefix="/packages", tags=["packages"])


def _workflow_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (PackageNotFoundError, DocumentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidStatusTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidPhotoError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, LocalStorageError):
        return storage_unavailable(exc)
    if isinstance(exc, RemoteUnavailableError):
        return remote_unavailable(exc)
    return remote_failed(exc)


@router.post("/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_package(
    package_data: PackageRegister,
    workflow: WorkflowDep,
    sync_engine: SyncEngineDep,
    background_tasks: BackgroundTasks,
    response: Response,
) -> RegistrationResponse:
    """Register an incoming package; queued for sync when the store is unreachable."""
    try:
        result = await workflow.register_package(package_data)
    except (InvalidPhotoError, LocalStorageError, RemoteRejectedError) as exc:
        raise _workflow_error(exc) from exc

    if result.queued:
        response.status_code = status.HTTP_202_ACCEPTED
    background_tasks.add_task(sync_engine.sync_pending_items)

    return RegistrationResponse(
        package_id=result.package_id,
        photo_id=result.photo_id,
        status=result.status,
        queued=result.queued,
    )


@router.get("/", response_model=list[PackageResponse])
async def list_packages(
    workflow: WorkflowDep,
    status_filter: Annotated[PackageStatus | None, Query(alias="status")] = None,
    unit_id: str | None = None,
) -> list[dict]:
    """List packages, optionally filtered by status and unit."""
    try:
        return await workflow.list_packages(status=status_filter, unit_id=unit_id)
    except (RemoteUnavailableError, RemoteRejectedError) as exc:
        raise _workflow_error(exc) from exc


@router.get("/pickup", response_model=list[PackageResponse])
async def search_pickup(unit_id: str, workflow: WorkflowDep) -> list[dict]:
    """List a unit's packages that are waiting for pickup."""
    try:
        return await workflow.search_pickup(unit_id)
    except (RemoteUnavailableError, RemoteRejectedError) as exc:
        raise _workflow_error(exc) from exc


@router.post("/pickup", response_model=PickupResponse)
async def confirm_pickup(
    pickup: PickupRequest,
    workflow: WorkflowDep,
    sync_engine: SyncEngineDep,
    background_tasks: BackgroundTasks,
    response: Response,
) -> PickupResponse:
    """Retire packages handed over to a resident, recording the signature."""
    try:
        result = await workflow.confirm_pickup(
            pickup.package_ids, pickup.recipient_name, pickup.signature_base64
        )
    except (
        PackageNotFoundError,
        InvalidStatusTransition,
        LocalStorageError,
        RemoteRejectedError,
    ) as exc:
        raise _workflow_error(exc) from exc

    if result.queued:
        response.status_code = status.HTTP_202_ACCEPTED
        background_tasks.add_task(sync_engine.sync_pending_items)
    return PickupResponse(retired=result.retired, queued=result.queued)


@router.get("/stats", response_model=PackageStats)
async def package_stats(
    workflow: WorkflowDep,
    since: datetime | None = None,
    until: datetime | None = None,
) -> PackageStats:
    """Count packages created in a period, for the dashboard and monthly reports."""
    try:
        return await workflow.package_stats(since=since, until=until)
    except (RemoteUnavailableError, RemoteRejectedError) as exc:
        raise _workflow_error(exc) from exc


@router.get("/{package_id}", response_model=PackageResponse)
async def get_package(package_id: str, workflow: WorkflowDep) -> dict:
    """Get a specific package by ID."""
    try:
        return await workflow.get_package(package_id)
    except (PackageNotFoundError, RemoteUnavailableError, RemoteRejectedError) as exc:
        raise _workflow_error(exc) from exc


@router.post("/{package_id}/triage", response_model=PackageResponse)
async def triage_package(
    package_id: str,
    triage: PackageTriage,
    workflow: WorkflowDep,
) -> dict:
    """Attach the triage photo and move the package on to notification."""
    try:
        await workflow.triage_package(package_id, triage.photo_base64)
        return await workflow.get_package(package_id)
    except (
        PackageNotFoundError,
        InvalidStatusTransition,
        InvalidPhotoError,
        LocalStorageError,
        RemoteUnavailableError,
        RemoteRejectedError,
    ) as exc:
        raise _workflow_error(exc) from exc


@router.get("/{package_id}/notification", response_model=NotificationResponse)
async def get_notification(
    package_id: str,
    notifications: NotificationDep,
) -> NotificationResponse:
    """Build the message and attachments to share with the resident."""
    try:
        return await notifications.build_notification(package_id)
    except (
        PackageNotFoundError,
        RemoteUnavailableError,
        RemoteRejectedError,
        LocalStorageError,
    ) as exc:
        raise _workflow_error(exc) from exc


@router.post("/{package_id}/notified", response_model=PackageResponse)
async def confirm_notification(package_id: str, workflow: WorkflowDep) -> dict:
    """Mark the resident as notified; the package now awaits pickup."""
    try:
        await workflow.confirm_notification(package_id)
        return await workflow.get_package(package_id)
    except (
        PackageNotFoundError,
        InvalidStatusTransition,
        RemoteUnavailableError,
        RemoteRejectedError,
    ) as exc:
        raise _workflow_error(exc) from exc
