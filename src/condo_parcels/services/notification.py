"""Composition of resident notifications.

The service does not deliver anything: it builds the text and image
attachments that the front-desk device hands to its sharing facility.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any

from condo_parcels.schemas.package import (
    NotificationAttachment,
    NotificationResponse,
    PackageLocation,
    PackageType,
)
from condo_parcels.services.local_store import LocalBlobStore, get_local_store
from condo_parcels.services.package_workflow import PackageNotFoundError
from condo_parcels.services.remote_store import (
    PACKAGES,
    UNITS,
    RemoteDocumentStore,
    get_remote_store,
)

LOCATION_LABELS = {
    PackageLocation.SECTOR.value: "Package room",
    PackageLocation.FRONT_DESK.value: "Front desk",
}


def compose_message(package: Mapping[str, Any]) -> str:
    """Build the notification text for a package."""
    unit = str(package.get("unit_id", ""))
    block = package.get("unit_block")
    location = LOCATION_LABELS.get(package.get("location"), LOCATION_LABELS["sector"])

    lines = [
        "📦 *Your package has arrived!*",
        "",
        f"🏢 Unit: {unit}" + (f" - Block {block}" if block else ""),
        f"📍 Pickup at: {location}",
        f"🏷️ Tracking code: {package.get('tracking_code', '')}",
    ]
    if package.get("type") == PackageType.PERISHABLE.value:
        lines.append("⚠️ ATTENTION: perishable or large item!")
    return "\n".join(lines)


class NotificationService:
    """Builds outbound notification payloads from remote and local data."""

    def __init__(
        self,
        local_store: LocalBlobStore | None = None,
        remote_store: RemoteDocumentStore | None = None,
    ) -> None:
        self.local_store = local_store or get_local_store()
        self.remote_store = remote_store or get_remote_store()

    async def build_notification(self, package_id: str) -> NotificationResponse:
        document = await self.remote_store.get_document(PACKAGES, package_id)
        if document is None:
            raise PackageNotFoundError(f"Package {package_id} not found")
        package = document.to_dict()

        phone = None
        unit_id = package.get("unit_id")
        if unit_id:
            unit = await self.remote_store.get_document(UNITS, str(unit_id))
            if unit is not None:
                phone = unit.fields.get("phone") or None

        attachments = []
        photo_id = package.get("local_photo_id")
        if photo_id:
            photo = await self.local_store.get_photo_record(photo_id)
            # A photo captured on another device is simply not attached.
            if photo is not None:
                attachments.append(
                    NotificationAttachment(
                        photo_id=photo.id,
                        filename=f"package_{unit_id}.jpg",
                        content_type=photo.content_type,
                        content_base64=base64.b64encode(photo.content).decode(),
                    )
                )

        return NotificationResponse(
            package_id=package_id,
            text=compose_message(package),
            phone=phone,
            attachments=attachments,
        )


def get_notification_service() -> NotificationService:
    """Return a new notification service bound to the global stores."""
    return NotificationService()
