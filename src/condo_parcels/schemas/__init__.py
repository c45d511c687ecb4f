"""
Pydantic schemas for API request/response models and queued operations.

These schemas define the structure of API data for serialization and validation.
"""

from .operations import (
    CreatePackageOperation,
    OperationKind,
    PackageCreatePayload,
    PickupUpdateOperation,
    PickupUpdatePayload,
)
from .package import (
    NotificationResponse,
    PackageLocation,
    PackageRegister,
    PackageResponse,
    PackageStatus,
    PackageTriage,
    PackageType,
    PickupRequest,
    PickupResponse,
    RegistrationResponse,
)
from .photo import PhotoResponse, PhotoUpload
from .sync import (
    ConnectivityResponse,
    ConnectivityUpdate,
    PendingOperationResponse,
    SyncResult,
    SyncStatus,
    SyncStatusResponse,
)
from .unit import UnitCreate, UnitResponse

__all__ = [
    "CreatePackageOperation", "OperationKind", "PackageCreatePayload",
    "PickupUpdateOperation", "PickupUpdatePayload",
    "NotificationResponse", "PackageLocation", "PackageRegister", "PackageResponse",
    "PackageStatus", "PackageTriage", "PackageType", "PickupRequest", "PickupResponse",
    "RegistrationResponse",
    "PhotoResponse", "PhotoUpload",
    "ConnectivityResponse", "ConnectivityUpdate", "PendingOperationResponse",
    "SyncResult", "SyncStatus", "SyncStatusResponse",
    "UnitCreate", "UnitResponse",
]
