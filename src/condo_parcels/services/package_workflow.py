"""Front-desk package workflow: registration, triage, notification and pickup.

Each step moves a package one status forward along

    awaiting_triage -> pending_notification -> pending_pickup -> retired

Registration and pickup fall back to the pending queue when the remote store
cannot be reached, so the front desk keeps working offline.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from condo_parcels.core.settings import settings
from condo_parcels.db.time import utcnow
from condo_parcels.schemas.operations import (
    CreatePackageOperation,
    PackageCreatePayload,
    PickupUpdateOperation,
    PickupUpdatePayload,
    new_idempotency_key,
)
from condo_parcels.schemas.package import (
    PackageLocation,
    PackageRegister,
    PackageStats,
    PackageStatus,
    PackageType,
    UnitPackageStats,
)
from condo_parcels.services.local_store import (
    InvalidPhotoError,
    LocalBlobStore,
    decode_image_data,
    get_local_store,
)
from condo_parcels.services.remote_store import (
    PACKAGES,
    BatchWrite,
    QueryFilter,
    RemoteDocumentStore,
    RemoteUnavailableError,
    get_remote_store,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

STATUS_ORDER: tuple[PackageStatus, ...] = (
    PackageStatus.AWAITING_TRIAGE,
    PackageStatus.PENDING_NOTIFICATION,
    PackageStatus.PENDING_PICKUP,
    PackageStatus.RETIRED,
)

_LOCATION_VALUES = frozenset(location.value for location in PackageLocation)


class PackageWorkflowError(RuntimeError):
    """Base exception for workflow rule violations."""


class PackageNotFoundError(PackageWorkflowError):
    """Raised when a package document does not exist."""


class InvalidStatusTransition(PackageWorkflowError):
    """Raised when a step would move a package backwards or skip a status."""


def ensure_transition(current: PackageStatus, target: PackageStatus) -> None:
    """Allow only a single forward step along STATUS_ORDER."""
    if STATUS_ORDER.index(target) != STATUS_ORDER.index(current) + 1:
        raise InvalidStatusTransition(
            f"Cannot move package from {current.value} to {target.value}"
        )


def location_for(package_type: PackageType) -> PackageLocation:
    """Perishable and large items stay at the front desk."""
    if package_type is PackageType.PERISHABLE:
        return PackageLocation.FRONT_DESK
    return PackageLocation.SECTOR


def _status_of(document: Mapping[str, Any]) -> PackageStatus:
    try:
        return PackageStatus(document.get("status"))
    except ValueError as exc:
        raise InvalidStatusTransition(
            f"Package has unknown status {document.get('status')!r}"
        ) from exc


def _iso_utc(moment: datetime) -> str:
    # Stored timestamps are UTC ISO strings; naive bounds are taken as UTC.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


@dataclass(frozen=True)
class RegistrationResult:
    package_id: str
    photo_id: str | None
    status: PackageStatus
    queued: bool


@dataclass(frozen=True)
class PickupResult:
    retired: int
    queued: bool


class PackageWorkflowService:
    """Runs the workflow steps against the local and remote stores."""

    def __init__(
        self,
        local_store: LocalBlobStore | None = None,
        remote_store: RemoteDocumentStore | None = None,
    ) -> None:
        self.local_store = local_store or get_local_store()
        self.remote_store = remote_store or get_remote_store()

    async def _store_photo(self, photo_base64: str, package_ref: str | None) -> str:
        content, content_type = decode_image_data(photo_base64)
        if len(content) > settings.max_photo_bytes:
            raise InvalidPhotoError(
                f"Photo exceeds the {settings.max_photo_bytes} byte limit"
            )
        return await self.local_store.save_photo(content, package_ref, content_type)

    async def get_package(self, package_id: str) -> dict[str, Any]:
        document = await self.remote_store.get_document(PACKAGES, package_id)
        if document is None:
            raise PackageNotFoundError(f"Package {package_id} not found")
        return document.to_dict()

    async def register_package(self, data: PackageRegister) -> RegistrationResult:
        """Register an incoming package.

        The idempotency key doubles as the package document id, so a queued
        create replayed twice still yields a single document.
        """
        if not data.photo_base64 and not data.needs_triage:
            raise InvalidPhotoError("A photo is required to register a package")

        package_id = new_idempotency_key()
        photo_id = None
        if data.photo_base64:
            photo_id = await self._store_photo(data.photo_base64, package_id)

        status = (
            PackageStatus.AWAITING_TRIAGE if data.needs_triage
            else PackageStatus.PENDING_NOTIFICATION
        )
        payload = PackageCreatePayload(
            tracking_code=data.tracking_code,
            unit_id=data.unit_id,
            status=status,
            idempotency_key=package_id,
            unit_block=data.unit_block,
            type=data.type.value,
            location=location_for(data.type).value,
            local_photo_id=photo_id,
            created_at=utcnow().isoformat(),
            notified_at=None,
            retired_at=None,
            retired_by=None,
            signature_base64=None,
        )

        try:
            await self.remote_store.create_document(
                PACKAGES, payload.model_dump(mode="json"), document_id=package_id
            )
        except RemoteUnavailableError as e:
            logger.warning("Remote store unreachable, queueing package %s: %s", package_id, e)
            await self.local_store.enqueue_operation(CreatePackageOperation(payload=payload))
            return RegistrationResult(package_id, photo_id, status, queued=True)

        logger.info("Registered package %s for unit %s", package_id, data.unit_id)
        return RegistrationResult(package_id, photo_id, status, queued=False)

    async def triage_package(self, package_id: str, photo_base64: str | None = None) -> str:
        """Release a package for notification, attaching the triage photo.

        A photo captured at intake is kept; ``local_photo_id`` is never reassigned.

        Returns:
            The id of the package photo.

        Raises:
            InvalidPhotoError: If the package has no photo and none was given.
        """
        package = await self.get_package(package_id)
        ensure_transition(_status_of(package), PackageStatus.PENDING_NOTIFICATION)

        updates: dict[str, Any] = {"status": PackageStatus.PENDING_NOTIFICATION.value}
        photo_id = package.get("local_photo_id")
        if photo_id:
            logger.info("Package %s already has photo %s; keeping it", package_id, photo_id)
        elif photo_base64:
            photo_id = await self._store_photo(photo_base64, package_id)
            updates["local_photo_id"] = photo_id
        else:
            raise InvalidPhotoError("A photo is required to complete triage")

        await self.remote_store.update_fields(PACKAGES, package_id, updates)
        return photo_id

    async def list_packages(
        self,
        status: PackageStatus | None = None,
        unit_id: str | None = None,
    ) -> list[dict[str, Any]]:
        filters = []
        if status is not None:
            filters.append(QueryFilter("status", "==", status.value))
        if unit_id:
            filters.append(QueryFilter("unit_id", "==", unit_id))
        documents = await self.remote_store.query(PACKAGES, filters, order_by="created_at")
        return [document.to_dict() for document in documents]

    async def confirm_notification(self, package_id: str) -> None:
        """Record that the resident was notified."""
        package = await self.get_package(package_id)
        ensure_transition(_status_of(package), PackageStatus.PENDING_PICKUP)
        await self.remote_store.update_fields(
            PACKAGES,
            package_id,
            {
                "status": PackageStatus.PENDING_PICKUP.value,
                "notified_at": utcnow().isoformat(),
            },
        )

    async def search_pickup(self, unit_id: str) -> list[dict[str, Any]]:
        return await self.list_packages(status=PackageStatus.PENDING_PICKUP, unit_id=unit_id)

    async def package_stats(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> PackageStats:
        """Count packages created in ``[since, until]`` by status, location and unit."""
        filters = []
        if since is not None:
            filters.append(QueryFilter("created_at", ">=", _iso_utc(since)))
        if until is not None:
            filters.append(QueryFilter("created_at", "<=", _iso_utc(until)))
        documents = await self.remote_store.query(PACKAGES, filters, order_by="created_at")

        stats = PackageStats()
        for document in documents:
            package = document.fields
            try:
                package_status = _status_of(package)
            except InvalidStatusTransition:
                logger.warning("Skipping package %s with unknown status in stats", document.id)
                continue
            perishable = package.get("type") == PackageType.PERISHABLE.value

            stats.total += 1
            stats.by_status[package_status] = stats.by_status.get(package_status, 0) + 1
            if perishable:
                stats.perishable += 1
            location = package.get("location")
            if location in _LOCATION_VALUES:
                key = PackageLocation(location)
                stats.by_location[key] = stats.by_location.get(key, 0) + 1

            unit = stats.by_unit.setdefault(str(package.get("unit_id", "")), UnitPackageStats())
            unit.total += 1
            if package_status is PackageStatus.RETIRED:
                unit.retired += 1
            elif package_status is PackageStatus.PENDING_PICKUP:
                unit.pending_pickup += 1
            if perishable:
                unit.perishable += 1
        return stats

    async def confirm_pickup(
        self,
        package_ids: list[str],
        recipient_name: str,
        signature_base64: str,
    ) -> PickupResult:
        """Retire packages handed to a resident, all in one batch."""
        package_ids = list(dict.fromkeys(package_ids))
        updates = {
            "status": PackageStatus.RETIRED.value,
            "retired_at": utcnow().isoformat(),
            "retired_by": recipient_name,
            "signature_base64": signature_base64,
        }

        try:
            for package_id in package_ids:
                package = await self.get_package(package_id)
                ensure_transition(_status_of(package), PackageStatus.RETIRED)
            await self.remote_store.batch_write(
                [BatchWrite("update", PACKAGES, package_id, updates) for package_id in package_ids]
            )
        except RemoteUnavailableError as e:
            logger.warning(
                "Remote store unreachable, queueing pickup of %d packages: %s",
                len(package_ids),
                e,
            )
            for package_id in package_ids:
                await self.local_store.enqueue_operation(
                    PickupUpdateOperation(
                        payload=PickupUpdatePayload(package_id=package_id, updates=updates)
                    )
                )
            return PickupResult(retired=len(package_ids), queued=True)

        logger.info("Retired %d packages for %s", len(package_ids), recipient_name)
        return PickupResult(retired=len(package_ids), queued=False)


def get_package_workflow() -> PackageWorkflowService:
    """Return a new workflow service bound to the global stores."""
    return PackageWorkflowService()
