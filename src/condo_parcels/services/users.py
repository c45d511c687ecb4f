"""Administration of staff user documents kept in the remote store."""
from __future__ import annotations

import logging
from typing import Any

from condo_parcels.schemas.user import UserUpdate
from condo_parcels.services.remote_store import USERS, RemoteDocumentStore, get_remote_store

__all__ = [
    "UserNotFoundError",
    "UserService",
]

# Configure logger for this module
logger = logging.getLogger(__name__)


class UserNotFoundError(LookupError):
    """Raised when a user document does not exist."""


class UserService:
    """Listing and maintenance of the ``users`` collection.

    Accounts themselves are created by the identity provider; this service
    only changes roles, blocks users and removes their documents.
    """

    def __init__(self, remote_store: RemoteDocumentStore | None = None) -> None:
        self.remote_store = remote_store or get_remote_store()

    async def list_users(self) -> list[dict[str, Any]]:
        """Return every user, newest first."""
        documents = await self.remote_store.query(USERS, order_by="created_at")
        return [document.to_dict() for document in reversed(documents)]

    async def update_user(self, user_id: str, update: UserUpdate) -> dict[str, Any]:
        """Apply a role change or block toggle and return the updated user.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        document = await self.remote_store.get_document(USERS, user_id)
        if document is None:
            raise UserNotFoundError(f"User {user_id} not found")

        changes = update.model_dump(mode="json", exclude_none=True)
        await self.remote_store.update_fields(USERS, user_id, changes)
        logger.info("Updated user %s: %s", user_id, changes)
        return {**document.to_dict(), **changes}

    async def delete_user(self, user_id: str) -> None:
        await self.remote_store.delete_document(USERS, user_id)
        logger.info("Deleted user %s", user_id)

