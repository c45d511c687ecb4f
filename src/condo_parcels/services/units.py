"""CRUD-style helpers for apartment units kept in the remote store."""
from __future__ import annotations

from typing import Any

from condo_parcels.schemas.unit import UnitCreate
from condo_parcels.services.remote_store import (
    UNITS,
    QueryFilter,
    RemoteDocumentStore,
    get_remote_store,
)

__all__ = [
    "UnitNotFoundError",
    "UnitService",
]

# Highest code point in the private use area; closes a prefix range query.
PREFIX_RANGE_END = "\uf8ff"


class UnitNotFoundError(LookupError):
    """Raised when a unit document does not exist."""


class UnitService:
    """Lookup and maintenance of the ``units`` collection."""

    def __init__(self, remote_store: RemoteDocumentStore | None = None) -> None:
        self.remote_store = remote_store or get_remote_store()

    async def search_units(self, prefix: str = "", limit: int = 20) -> list[dict[str, Any]]:
        """Return units whose id starts with ``prefix``."""
        filters = []
        if prefix:
            filters = [
                QueryFilter("id", ">=", prefix),
                QueryFilter("id", "<=", prefix + PREFIX_RANGE_END),
            ]
        documents = await self.remote_store.query(UNITS, filters, order_by="id", limit=limit)
        return [document.to_dict() for document in documents]

    async def get_unit(self, unit_id: str) -> dict[str, Any]:
        document = await self.remote_store.get_document(UNITS, unit_id)
        if document is None:
            raise UnitNotFoundError(f"Unit {unit_id} not found")
        return document.to_dict()

    async def create_unit(self, unit: UnitCreate) -> dict[str, Any]:
        """Create a unit keyed by its apartment number.

        Raises:
            DocumentConflictError: If the unit already exists.
        """
        document = await self.remote_store.create_document(
            UNITS, unit.model_dump(exclude={"id"}), document_id=unit.id
        )
        return document.to_dict()

    async def delete_unit(self, unit_id: str) -> None:
        await self.remote_store.delete_document(UNITS, unit_id)

