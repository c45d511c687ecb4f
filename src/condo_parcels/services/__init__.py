"""Business logic services for the condo parcels application."""

from .connectivity import ConnectivityMonitor
from .local_store import LocalBlobStore
from .notification import NotificationService
from .package_workflow import PackageWorkflowService
from .remote_store import RemoteDocumentStore
from .sync_engine import SyncEngine
from .units import UnitService

__all__ = [
    "ConnectivityMonitor",
    "LocalBlobStore",
    "NotificationService",
    "PackageWorkflowService",
    "RemoteDocumentStore",
    "SyncEngine",
    "UnitService",
]
