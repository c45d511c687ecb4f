"""Staff user administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from condo_parcels.schemas.user import UserResponse, UserUpdate
from condo_parcels.services.remote_store import RemoteRejectedError, RemoteUnavailableError
from condo_parcels.services.users import UserNotFoundError

from ..dependencies import UserServiceDep, remote_failed, remote_unavailable

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=list[UserResponse])
async def list_users(users: UserServiceDep) -> list[dict]:
    """List staff users, newest first."""
    try:
        return await users.list_users()
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, update: UserUpdate, users: UserServiceDep) -> dict:
    """Change a user's role or block/unblock them."""
    try:
        return await users.update_user(user_id, update)
    except UserNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        ) from exc
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_user(user_id: str, users: UserServiceDep) -> Response:
    """Remove a user document. Removing an unknown user also succeeds."""
    try:
        await users.delete_user(user_id)
    except RemoteUnavailableError as exc:
        raise remote_unavailable(exc) from exc
    except RemoteRejectedError as exc:
        raise remote_failed(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
