"""Local persistence for captured photos and the pending-operation queue.

The local store is the only component that touches the ``stored_photo`` and
``pending_operation`` tables. Every write is committed individually, so each
add/remove is atomic on its own; nothing spans a read of the queue and the
later removal of applied entries.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from condo_parcels.db import session as db_session_module
from condo_parcels.models import (
    OPERATION_STATUS_DEAD_LETTER,
    OPERATION_STATUS_PENDING,
    PendingOperation,
    StoredPhoto,
)
from condo_parcels.schemas.operations import (
    KNOWN_OPERATION_KINDS,
    CreatePackageOperation,
    PickupUpdateOperation,
    dump_payload,
    parse_operation,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[^,]*)?;base64,(?P<data>.*)$", re.S)


class LocalStorageError(RuntimeError):
    """Raised when the local store is unavailable or cannot accept writes."""


class InvalidPhotoError(ValueError):
    """Raised when captured image data cannot be decoded."""


@dataclass(frozen=True)
class PendingOperationRecord:
    """Detached snapshot of a queued operation."""

    id: int
    kind: str
    payload: dict[str, Any]
    enqueued_at: datetime
    status: str
    attempts: int
    last_error: str | None

    @classmethod
    def from_model(cls, row: PendingOperation) -> PendingOperationRecord:
        return cls(
            id=row.id,
            kind=row.kind,
            payload=dict(row.payload),
            enqueued_at=row.enqueued_at,
            status=row.status,
            attempts=row.attempts,
            last_error=row.last_error,
        )


def decode_image_data(data: str) -> tuple[bytes, str]:
    """Decode a data URL or bare base64 string into ``(content, content_type)``.

    Raises:
        InvalidPhotoError: If the data is empty or not valid base64.
    """
    content_type = DEFAULT_CONTENT_TYPE
    raw = data.strip()
    match = _DATA_URL_RE.match(raw)
    if match:
        content_type = match.group("mime") or DEFAULT_CONTENT_TYPE
        raw = match.group("data")

    try:
        content = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPhotoError("Photo is not valid base64 data") from exc
    if not content:
        raise InvalidPhotoError("Photo is empty")
    return content, content_type


def new_photo_id() -> str:
    """Return a candidate photo identifier."""
    return f"photo_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


class LocalBlobStore:
    """Durable on-device store for photos and deferred remote writes."""

    def __init__(
        self,
        db_session: Session | None = None,
        session_factory: Callable[[], Session] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db_session: Optional session to reuse for every call. If None, a new
                session is opened per call.
            session_factory: Optional factory for per-call sessions. Defaults to
                the application's ``SessionLocal``.
        """
        self._db_session = db_session
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._db_session is not None:
            yield self._db_session
            return

        factory = self._session_factory or db_session_module.SessionLocal
        with factory() as db:
            yield db

    @contextmanager
    def _write(self) -> Iterator[Session]:
        """Open a session and commit on exit, mapping failures to LocalStorageError."""
        with self._session() as db:
            try:
                yield db
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Local store write failed: %s", exc)
                raise LocalStorageError(f"Local store unavailable: {exc}") from exc

    # Photos

    async def save_photo(
        self,
        content: bytes,
        package_ref: str | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> str:
        """Store a captured photo and return its new identifier."""
        with self._write() as db:
            photo_id = new_photo_id()
            while db.get(StoredPhoto, photo_id) is not None:
                photo_id = new_photo_id()
            db.add(
                StoredPhoto(
                    id=photo_id,
                    package_ref=package_ref,
                    content_type=content_type,
                    content=content,
                )
            )
        logger.debug("Saved photo %s (%d bytes)", photo_id, len(content))
        return photo_id

    async def get_photo_record(self, photo_id: str) -> StoredPhoto | None:
        """Return the stored photo row, or None if unknown."""
        try:
            with self._session() as db:
                photo = db.get(StoredPhoto, photo_id)
                if photo is not None:
                    db.expunge(photo)
                return photo
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Local store unavailable: {exc}") from exc

    async def get_photo(self, photo_id: str) -> bytes | None:
        """Return photo content, or None if the id is unknown or deleted."""
        photo = await self.get_photo_record(photo_id)
        return photo.content if photo else None

    async def delete_photo(self, photo_id: str) -> None:
        """Delete a photo; deleting an absent id is a no-op."""
        with self._write() as db:
            db.query(StoredPhoto).filter(StoredPhoto.id == photo_id).delete()

    # Pending operations

    async def enqueue_operation(
        self,
        operation: CreatePackageOperation | PickupUpdateOperation | str,
        payload: Mapping[str, Any] | None = None,
    ) -> int:
        """Append an operation to the queue and return its id.

        Accepts either a typed operation or a raw ``kind`` plus payload mapping.
        Raw payloads are validated against the kind's schema before storing.

        Raises:
            ValueError: If the kind is not one the sync engine understands.
            pydantic.ValidationError: If the payload does not match the kind.
            LocalStorageError: If the queue cannot be written.
        """
        if isinstance(operation, str):
            if operation not in KNOWN_OPERATION_KINDS:
                raise ValueError(f"Unknown operation kind: {operation}")
            operation = parse_operation(operation, dict(payload or {}))

        with self._write() as db:
            row = PendingOperation(
                kind=operation.kind,
                payload=dump_payload(operation),
                status=OPERATION_STATUS_PENDING,
                attempts=0,
            )
            db.add(row)
            db.flush()
            operation_id = row.id
        logger.info("Queued %s operation %d for sync", operation.kind, operation_id)
        return operation_id

    async def list_pending_operations(self) -> list[PendingOperationRecord]:
        """Return a snapshot of pending operations, oldest first."""
        return self._list_by_status(OPERATION_STATUS_PENDING)

    async def list_dead_letters(self) -> list[PendingOperationRecord]:
        """Return operations parked after exhausting their attempts."""
        return self._list_by_status(OPERATION_STATUS_DEAD_LETTER)

    def _list_by_status(self, status: str) -> list[PendingOperationRecord]:
        try:
            with self._session() as db:
                rows = (
                    db.query(PendingOperation)
                    .filter(PendingOperation.status == status)
                    .order_by(PendingOperation.id)
                    .all()
                )
                return [PendingOperationRecord.from_model(row) for row in rows]
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Local store unavailable: {exc}") from exc

    async def count_pending(self) -> int:
        return self._count_by_status(OPERATION_STATUS_PENDING)

    async def count_dead_letters(self) -> int:
        return self._count_by_status(OPERATION_STATUS_DEAD_LETTER)

    def _count_by_status(self, status: str) -> int:
        try:
            with self._session() as db:
                return int(
                    db.query(func.count(PendingOperation.id))
                    .filter(PendingOperation.status == status)
                    .scalar()
                    or 0
                )
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Local store unavailable: {exc}") from exc

    async def remove_operation(self, operation_id: int) -> None:
        """Remove one queued operation; removing an absent id is a no-op."""
        with self._write() as db:
            db.query(PendingOperation).filter(PendingOperation.id == operation_id).delete()

    async def remove_operations(self, operation_ids: list[int]) -> None:
        """Remove several operations, one commit per id."""
        for operation_id in operation_ids:
            await self.remove_operation(operation_id)

    async def record_failure(self, operation_id: int, error: str, max_attempts: int) -> bool:
        """Charge a failed attempt to an operation.

        Returns:
            True if the operation was moved to the dead-letter set.
        """
        with self._write() as db:
            row = db.get(PendingOperation, operation_id)
            if row is None:
                return False
            row.attempts += 1
            row.last_error = error[:500]
            if max_attempts > 0 and row.attempts >= max_attempts:
                row.status = OPERATION_STATUS_DEAD_LETTER
                logger.warning(
                    "Operation %d (%s) moved to dead letters after %d attempts",
                    operation_id,
                    row.kind,
                    row.attempts,
                )
            dead_lettered = row.status == OPERATION_STATUS_DEAD_LETTER
        return dead_lettered

    async def requeue_operation(self, operation_id: int) -> bool:
        """Return a dead-lettered operation to the pending queue with a fresh budget.

        Returns:
            True if a dead letter with that id existed.
        """
        with self._write() as db:
            row = db.get(PendingOperation, operation_id)
            if row is None or row.status != OPERATION_STATUS_DEAD_LETTER:
                return False
            row.status = OPERATION_STATUS_PENDING
            row.attempts = 0
            row.last_error = None
        logger.info("Requeued dead-lettered operation %d", operation_id)
        return True


_local_store: LocalBlobStore | None = None


def get_local_store() -> LocalBlobStore:
    """Return the process-wide local store."""
    global _local_store
    if _local_store is None:
        _local_store = LocalBlobStore()
    return _local_store
