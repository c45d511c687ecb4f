"""Typed view of queued remote writes.

Rows in the ``pending_operation`` table store a ``kind`` tag and a JSON
payload. The models below give each kind its own payload type; the sync
engine parses rows through :data:`operation_adapter` before dispatching.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .package import PackageStatus


class OperationKind(str, Enum):
    """Closed set of operation kinds understood by the sync engine."""

    CREATE_PACKAGE = "create_package"
    APPLY_PICKUP_UPDATE = "apply_pickup_update"


KNOWN_OPERATION_KINDS = frozenset(kind.value for kind in OperationKind)


def new_idempotency_key() -> str:
    """Return a fresh key used as the remote document id for creates."""
    return uuid.uuid4().hex


class PackageCreatePayload(BaseModel):
    """Package document to create remotely.

    Unknown fields are preserved so the document is created verbatim.
    """

    model_config = ConfigDict(extra="allow")

    tracking_code: str
    unit_id: str
    status: PackageStatus = PackageStatus.PENDING_NOTIFICATION
    idempotency_key: str = Field(default_factory=new_idempotency_key, min_length=1)


class PickupUpdatePayload(BaseModel):
    """Targeted field update against one package document."""

    model_config = ConfigDict(populate_by_name=True)

    package_id: str = Field(alias="packageId", min_length=1)
    updates: dict[str, Any] = Field(min_length=1)


class CreatePackageOperation(BaseModel):
    kind: Literal["create_package"] = "create_package"
    payload: PackageCreatePayload


class PickupUpdateOperation(BaseModel):
    kind: Literal["apply_pickup_update"] = "apply_pickup_update"
    payload: PickupUpdatePayload


QueuedOperation = Annotated[
    Union[CreatePackageOperation, PickupUpdateOperation],
    Field(discriminator="kind"),
]

operation_adapter: TypeAdapter[QueuedOperation] = TypeAdapter(QueuedOperation)


def parse_operation(kind: str, payload: Any) -> CreatePackageOperation | PickupUpdateOperation:
    """Validate a stored kind/payload pair into its typed operation.

    Raises:
        pydantic.ValidationError: If the kind is unknown or the payload is malformed.
    """
    return operation_adapter.validate_python({"kind": kind, "payload": payload})


def dump_payload(operation: CreatePackageOperation | PickupUpdateOperation) -> dict[str, Any]:
    """Serialize an operation payload into the JSON stored in the queue."""
    return operation.payload.model_dump(mode="json", by_alias=True)
