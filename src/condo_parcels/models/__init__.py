# src/condo_parcels/models/__init__.py
"""SQLAlchemy models for the local store."""

from .pending_operation import (
    OPERATION_STATUS_DEAD_LETTER,
    OPERATION_STATUS_PENDING,
    PendingOperation,
)
from .photo import StoredPhoto

__all__ = [
    "PendingOperation",
    "OPERATION_STATUS_PENDING", "OPERATION_STATUS_DEAD_LETTER",
    "StoredPhoto",
]
