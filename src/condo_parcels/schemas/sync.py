"""Sync queue and connectivity schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class SyncStatus(str, Enum):
    """Overall outcome of one drain of the pending queue."""

    OK = "ok"
    # No connectivity reported; the queue was not inspected.
    OFFLINE = "offline"
    EMPTY = "empty"
    # The remote store could not be reached and nothing was applied.
    UNREACHABLE = "unreachable"
    # The remote store became unreachable part way through the drain.
    INTERRUPTED = "interrupted"


class SyncResult(BaseModel):
    """Aggregate counts reported by a drain."""

    status: SyncStatus
    applied: int = 0
    failed: int = 0
    skipped: int = 0
    dead_lettered: int = 0

    @property
    def success(self) -> bool:
        return self.status in (SyncStatus.OK, SyncStatus.EMPTY)


class PendingOperationResponse(BaseModel):
    """Queued operation as exposed for inspection."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    payload: dict[str, Any]
    enqueued_at: datetime
    status: str
    attempts: int
    last_error: str | None


class SyncStatusResponse(BaseModel):
    """Snapshot of queue health."""

    online: bool
    pending: int
    dead_letters: int
    drain_in_progress: bool


class ConnectivityUpdate(BaseModel):
    """Online/offline transition reported by the front-desk client."""

    online: bool


class ConnectivityResponse(BaseModel):
    online: bool
    sync: SyncResult | None = None
