"""Shared API dependencies wiring services into request handlers."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from condo_parcels.db.session import get_db
from condo_parcels.services.connectivity import ConnectivityMonitor, get_connectivity_monitor
from condo_parcels.services.local_store import LocalBlobStore
from condo_parcels.services.notification import NotificationService
from condo_parcels.services.package_workflow import PackageWorkflowService
from condo_parcels.services.remote_store import RemoteDocumentStore, get_remote_store
from condo_parcels.services.sync_engine import SyncEngine, get_sync_engine
from condo_parcels.services.units import UnitService
from condo_parcels.services.users import UserService

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_local_store_dep(db: SessionDep) -> LocalBlobStore:
    """Get a local store bound to the request's database session."""
    return LocalBlobStore(db_session=db)


def get_remote_store_dep() -> RemoteDocumentStore:
    """Get the remote document store client."""
    return get_remote_store()


def get_sync_engine_dep() -> SyncEngine:
    """Get the sync engine."""
    return get_sync_engine()


def get_connectivity_dep() -> ConnectivityMonitor:
    """Get the connectivity monitor."""
    return get_connectivity_monitor()


LocalStoreDep = Annotated[LocalBlobStore, Depends(get_local_store_dep)]
RemoteStoreDep = Annotated[RemoteDocumentStore, Depends(get_remote_store_dep)]
SyncEngineDep = Annotated[SyncEngine, Depends(get_sync_engine_dep)]
ConnectivityDep = Annotated[ConnectivityMonitor, Depends(get_connectivity_dep)]


def get_workflow_dep(
    local_store: LocalStoreDep, remote_store: RemoteStoreDep
) -> PackageWorkflowService:
    """Get the package workflow service."""
    return PackageWorkflowService(local_store, remote_store)


def get_notification_dep(
    local_store: LocalStoreDep, remote_store: RemoteStoreDep
) -> NotificationService:
    """Get the notification service."""
    return NotificationService(local_store, remote_store)


def get_unit_service_dep(remote_store: RemoteStoreDep) -> UnitService:
    """Get the unit service."""
    return UnitService(remote_store)


def get_user_service_dep(remote_store: RemoteStoreDep) -> UserService:
    """Get the user service."""
    return UserService(remote_store)


WorkflowDep = Annotated[PackageWorkflowService, Depends(get_workflow_dep)]
NotificationDep = Annotated[NotificationService, Depends(get_notification_dep)]
UnitServiceDep = Annotated[UnitService, Depends(get_unit_service_dep)]
UserServiceDep = Annotated[UserService, Depends(get_user_service_dep)]


def remote_unavailable(exc: Exception) -> HTTPException:
    """Build the response used when the remote store cannot be reached."""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Remote store unavailable: {exc}",
    )


def storage_unavailable(exc: Exception) -> HTTPException:
    """Build the response used when the local store fails."""
    return HTTPException(
        status_code=status.HTTP_507_INSUFFICIENT_STORAGE,
        detail=f"Local storage unavailable: {exc}",
    )


def remote_failed(exc: Exception) -> HTTPException:
    """Build the response used when the remote store refused or failed a request."""
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Remote store error: {exc}",
    )
