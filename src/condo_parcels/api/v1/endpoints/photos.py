"""Local photo cache endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from condo_parcels.core.settings import settings
from condo_parcels.schemas.photo import PhotoResponse, PhotoUpload
from condo_parcels.services.local_store import (
    InvalidPhotoError,
    LocalStorageError,
    decode_image_data,
)

from ..dependencies import LocalStoreDep, storage_unavailable

router = APIRouter(prefix="/photos", tags=["photos"])


@router.post("/", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(upload: PhotoUpload, local_store: LocalStoreDep) -> PhotoResponse:
    """Cache a captured photo on this device."""
    try:
        content, content_type = decode_image_data(upload.content_base64)
    except InvalidPhotoError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    if len(content) > settings.max_photo_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Photo too large",
        )

    try:
        photo_id = await local_store.save_photo(content, upload.package_ref, content_type)
        photo = await local_store.get_photo_record(photo_id)
    except LocalStorageError as exc:
        raise storage_unavailable(exc) from exc
    return PhotoResponse.model_validate(photo)


@router.get("/{photo_id}", response_class=Response)
async def get_photo(photo_id: str, local_store: LocalStoreDep) -> Response:
    """Return the raw image bytes."""
    try:
        photo = await local_store.get_photo_record(photo_id)
    except LocalStorageError as exc:
        raise storage_unavailable(exc) from exc
    if photo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found"
        )
    return Response(content=photo.content, media_type=photo.content_type)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_photo(photo_id: str, local_store: LocalStoreDep) -> Response:
    """Delete a cached photo. Deleting an unknown photo also succeeds."""
    try:
        await local_store.delete_photo(photo_id)
    except LocalStorageError as exc:
        raise storage_unavailable(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
