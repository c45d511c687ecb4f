"""Drain of the pending-operation queue into the remote document store.

This module provides the SyncEngine class. A drain takes a snapshot of the
pending queue, replays each operation against the remote store in enqueue
order, and removes the applied ones once the whole pass is over.

Drains are single-flight: a call made while a drain is running joins that
drain and receives its result instead of starting a second pass over the same
entries. If anyone joined, the drain then replays whatever was queued after
its snapshot before settling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from condo_parcels.core.settings import settings
from condo_parcels.schemas.operations import (
    KNOWN_OPERATION_KINDS,
    CreatePackageOperation,
    PickupUpdateOperation,
    parse_operation,
)
from condo_parcels.schemas.sync import SyncResult, SyncStatus
from condo_parcels.services.local_store import (
    LocalBlobStore,
    PendingOperationRecord,
    get_local_store,
)
from condo_parcels.services.remote_store import (
    PACKAGES,
    DocumentConflictError,
    RemoteDocumentStore,
    RemoteStoreError,
    RemoteUnavailableError,
    get_remote_store,
)

# Configure logger for this module
logger = logging.getLogger(__name__)


class SyncEngine:
    """Stateless coordinator between the local queue and the remote store."""

    def __init__(
        self,
        local_store: LocalBlobStore | None = None,
        remote_store: RemoteDocumentStore | None = None,
        is_online: Callable[[], bool] | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            local_store: Store holding the pending queue. If None, uses the global store.
            remote_store: Remote document store client. If None, uses the global client.
            is_online: Callable reporting current connectivity. Defaults to always online.
            max_attempts: Failed attempts before an entry is dead-lettered. Defaults to
                ``settings.sync_max_attempts``; zero disables dead-lettering.
        """
        self.local_store = local_store or get_local_store()
        self.remote_store = remote_store or get_remote_store()
        self._is_online = is_online or (lambda: True)
        self._max_attempts = max_attempts
        self._inflight: asyncio.Task[SyncResult] | None = None
        self._rerun_requested = False

    @property
    def max_attempts(self) -> int:
        if self._max_attempts is not None:
            return self._max_attempts
        return settings.sync_max_attempts

    @property
    def drain_in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def sync_pending_items(self) -> SyncResult:
        """Replay queued operations against the remote store.

        Returns:
            Aggregate counts. Individual operation failures never raise.
        """
        if not self._is_online():
            logger.info("Device is offline, skipping sync")
            return SyncResult(status=SyncStatus.OFFLINE)

        if self.drain_in_progress:
            logger.debug("Drain already running; joining it")
            self._rerun_requested = True
        else:
            self._rerun_requested = False
            self._inflight = asyncio.create_task(self._drain_until_settled())

        assert self._inflight is not None
        return await asyncio.shield(self._inflight)

    async def _drain_until_settled(self) -> SyncResult:
        result, last_id = await self._drain()
        # Callers that joined mid-pass may have queued entries the snapshot missed.
        while self._rerun_requested and result.success:
            self._rerun_requested = False
            logger.debug("Re-running drain for operations queued after %d", last_id)
            extra, last_id = await self._drain(after_id=last_id)
            result = _combine(result, extra)
        return result

    async def _drain(self, after_id: int = 0) -> tuple[SyncResult, int]:
        pending = [
            record
            for record in await self.local_store.list_pending_operations()
            if record.id > after_id
        ]
        if not pending:
            return SyncResult(status=SyncStatus.EMPTY), after_id

        logger.debug("Found %d pending operations", len(pending))
        last_id = max(record.id for record in pending)

        applied_ids: list[int] = []
        failed = 0
        skipped = 0
        dead_lettered = 0
        unreachable = False

        for record in pending:
            if record.kind not in KNOWN_OPERATION_KINDS:
                logger.warning(
                    "Unknown sync operation kind %r (operation %d); leaving it queued",
                    record.kind,
                    record.id,
                )
                skipped += 1
                if await self._charge_failure(record, f"Unknown operation kind: {record.kind}"):
                    dead_lettered += 1
                continue

            try:
                await self._apply(record)
            except RemoteUnavailableError as e:
                logger.warning(
                    "Remote store unreachable while syncing operation %d: %s", record.id, e
                )
                unreachable = True
                break
            except (RemoteStoreError, ValueError, TypeError, KeyError) as e:
                logger.error(
                    "Error syncing operation %d (%s): %s", record.id, record.kind, e
                )
                failed += 1
                if await self._charge_failure(record, str(e)):
                    dead_lettered += 1
                continue

            applied_ids.append(record.id)

        # Removal happens only after the full pass.
        await self.local_store.remove_operations(applied_ids)

        if unreachable:
            status = SyncStatus.INTERRUPTED if applied_ids else SyncStatus.UNREACHABLE
        else:
            status = SyncStatus.OK

        result = SyncResult(
            status=status,
            applied=len(applied_ids),
            failed=failed,
            skipped=skipped,
            dead_lettered=dead_lettered,
        )
        logger.info(
            "Sync finished (%s): %d applied, %d failed, %d skipped, %d dead-lettered",
            result.status.value,
            result.applied,
            result.failed,
            result.skipped,
            result.dead_lettered,
        )
        return result, last_id

    async def _apply(self, record: PendingOperationRecord) -> None:
        operation = parse_operation(record.kind, record.payload)

        if isinstance(operation, CreatePackageOperation):
            payload = operation.payload
            try:
                await self.remote_store.create_document(
                    PACKAGES,
                    payload.model_dump(mode="json"),
                    document_id=payload.idempotency_key,
                )
            except DocumentConflictError:
                # Already created by an earlier drain that did not get to remove the entry.
                logger.info(
                    "Package %s already exists remotely; operation %d treated as applied",
                    payload.idempotency_key,
                    record.id,
                )
        elif isinstance(operation, PickupUpdateOperation):
            await self.remote_store.update_fields(
                PACKAGES,
                operation.payload.package_id,
                operation.payload.updates,
            )

    async def _charge_failure(self, record: PendingOperationRecord, error: str) -> bool:
        return await self.local_store.record_failure(record.id, error, self.max_attempts)


def _combine(first: SyncResult, second: SyncResult) -> SyncResult:
    applied = first.applied + second.applied
    if second.status == SyncStatus.EMPTY:
        status = first.status
    elif second.status == SyncStatus.UNREACHABLE and applied:
        status = SyncStatus.INTERRUPTED
    else:
        status = second.status
    return SyncResult(
        status=status,
        applied=applied,
        failed=first.failed + second.failed,
        skipped=first.skipped + second.skipped,
        dead_lettered=first.dead_lettered + second.dead_lettered,
    )


_sync_engine: SyncEngine | None = None


def get_sync_engine() -> SyncEngine:
    """Return the process-wide sync engine, wired to the connectivity monitor."""
    global _sync_engine
    if _sync_engine is None:
        from condo_parcels.services.connectivity import get_connectivity_monitor

        _sync_engine = SyncEngine(is_online=lambda: get_connectivity_monitor().is_online)
    return _sync_engine
