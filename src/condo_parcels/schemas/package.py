"""Package-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageStatus(str, Enum):
    """Lifecycle of a package document, in transition order."""

    AWAITING_TRIAGE = "awaiting_triage"
    PENDING_NOTIFICATION = "pending_notification"
    PENDING_PICKUP = "pending_pickup"
    RETIRED = "retired"


class PackageType(str, Enum):
    """Intake classification; perishable also covers large items."""

    NORMAL = "normal"
    PERISHABLE = "perishable"


class PackageLocation(str, Enum):
    """Where the package is physically kept until pickup."""

    SECTOR = "sector"
    FRONT_DESK = "front_desk"


class PackageRegister(BaseModel):
    """Schema for registering a package at intake."""

    tracking_code: str = Field(min_length=1)
    unit_id: str = Field(min_length=1)
    unit_block: str = ""
    type: PackageType = PackageType.NORMAL
    # Data URL or bare base64, as produced by the capture widget.
    photo_base64: str | None = None
    needs_triage: bool = False

    @field_validator("tracking_code", "unit_id")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PackageTriage(BaseModel):
    """Schema for the triage step.

    The photo may be omitted when one was already captured at intake.
    """

    photo_base64: str | None = None


class PickupRequest(BaseModel):
    """Schema for retiring one or more packages with a signature."""

    package_ids: list[str] = Field(min_length=1)
    recipient_name: str
    signature_base64: str = Field(min_length=1)

    @field_validator("recipient_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("recipient name is required")
        return value


class PackageResponse(BaseModel):
    """Schema for package documents returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    tracking_code: str
    unit_id: str
    unit_block: str = ""
    type: PackageType = PackageType.NORMAL
    status: PackageStatus
    location: PackageLocation | None = None
    local_photo_id: str | None = None
    created_at: datetime | None = None
    notified_at: datetime | None = None
    retired_at: datetime | None = None
    retired_by: str | None = None


class RegistrationResponse(BaseModel):
    """Outcome of a package registration."""

    package_id: str
    photo_id: str | None
    status: PackageStatus
    # True when the remote write was deferred to the sync queue.
    queued: bool


class PickupResponse(BaseModel):
    """Outcome of a pickup confirmation."""

    retired: int
    queued: bool


class NotificationAttachment(BaseModel):
    """Image attached to an outbound resident notification."""

    photo_id: str
    filename: str
    content_type: str
    content_base64: str


class NotificationResponse(BaseModel):
    """Text and attachments handed to the external sharing facility."""

    package_id: str
    text: str
    phone: str | None
    attachments: list[NotificationAttachment]


class UnitPackageStats(BaseModel):
    """Per-unit package counts."""

    total: int = 0
    retired: int = 0
    pending_pickup: int = 0
    perishable: int = 0


class PackageStats(BaseModel):
    """Package counts for the dashboard and monthly reports."""

    total: int = 0
    perishable: int = 0
    by_status: dict[PackageStatus, int] = Field(default_factory=dict)
    by_location: dict[PackageLocation, int] = Field(default_factory=dict)
    by_unit: dict[str, UnitPackageStats] = Field(default_factory=dict)
