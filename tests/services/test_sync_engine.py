"""Tests for draining the pending queue into the remote store."""

import asyncio

import pytest
from sqlalchemy.orm import Session

from condo_parcels.models import PendingOperation
from condo_parcels.schemas.operations import (
    CreatePackageOperation,
    PackageCreatePayload,
    PickupUpdateOperation,
    PickupUpdatePayload,
)
from condo_parcels.schemas.sync import SyncStatus
from condo_parcels.services.local_store import LocalBlobStore
from condo_parcels.services.remote_store import RemoteDocumentStore
from condo_parcels.services.sync_engine import SyncEngine
from tests.fakes import FakeDocumentServer, package_fields


def _create(tracking_code: str, key: str | None = None) -> CreatePackageOperation:
    fields = {"tracking_code": tracking_code, "unit_id": "101"}
    if key:
        fields["idempotency_key"] = key
    return CreatePackageOperation(payload=PackageCreatePayload(**fields))


def _pickup(package_id: str) -> PickupUpdateOperation:
    return PickupUpdateOperation(
        payload=PickupUpdatePayload(package_id=package_id, updates={"status": "retired"})
    )


@pytest.mark.asyncio
async def test_offline_sync_leaves_queue_untouched(
    local_store: LocalBlobStore,
    remote_store: RemoteDocumentStore,
    remote_server: FakeDocumentServer,
) -> None:
    engine = SyncEngine(local_store, remote_store, is_online=lambda: False)
    await local_store.enqueue_operation(_create("BR1"))
    await local_store.enqueue_operation(_create("BR2"))

    result = await engine.sync_pending_items()

    assert result.status == SyncStatus.OFFLINE
    assert (result.applied, result.failed) == (0, 0)
    assert len(await local_store.list_pending_operations()) == 2
    assert remote_server.calls == []


@pytest.mark.asyncio
async def test_empty_queue_reports_empty(sync_engine: SyncEngine) -> None:
    result = await sync_engine.sync_pending_items()

    assert result.status == SyncStatus.EMPTY
    assert result.success


@pytest.mark.asyncio
async def test_create_and_pickup_are_both_applied(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    remote_server.seed("packages", "X", package_fields(status="pending_pickup"))
    await local_store.enqueue_operation(
        "create_package",
        {"tracking_code": "BR123", "unit_id": "101", "status": "pending_notification"},
    )
    await local_store.enqueue_operation(
        "apply_pickup_update", {"packageId": "X", "updates": {"status": "retired"}}
    )

    result = await sync_engine.sync_pending_items()

    assert result.status == SyncStatus.OK
    assert (result.applied, result.failed) == (2, 0)
    assert await local_store.list_pending_operations() == []
    assert remote_server.document("packages", "X")["status"] == "retired"
    created = [
        fields
        for doc_id, fields in remote_server.collections["packages"].items()
        if doc_id != "X"
    ]
    assert len(created) == 1
    assert created[0]["tracking_code"] == "BR123"


@pytest.mark.asyncio
async def test_failed_operation_stays_queued_between_successes(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    await local_store.enqueue_operation(_create("BR1"))
    # No such package remotely, so the update is rejected with 404.
    second = await local_store.enqueue_operation(_pickup("missing"))
    await local_store.enqueue_operation(_create("BR3"))

    result = await sync_engine.sync_pending_items()

    assert (result.applied, result.failed) == (2, 1)
    assert result.status == SyncStatus.OK
    [remaining] = await local_store.list_pending_operations()
    assert remaining.id == second
    assert remaining.attempts == 1
    assert "missing" in remaining.last_error
    assert len(remote_server.collections["packages"]) == 2


@pytest.mark.asyncio
async def test_server_error_on_one_operation_does_not_block_the_rest(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    remote_server.seed("packages", "bad", package_fields(status="pending_pickup"))
    remote_server.seed("packages", "good", package_fields(status="pending_pickup"))
    first = await local_store.enqueue_operation(_pickup("bad"))
    await local_store.enqueue_operation(_pickup("good"))
    remote_server.fail_once("PATCH", "/documents/bad", 500)

    result = await sync_engine.sync_pending_items()

    assert result.status == SyncStatus.OK
    assert (result.applied, result.failed) == (1, 1)
    assert remote_server.document("packages", "good")["status"] == "retired"
    [remaining] = await local_store.list_pending_operations()
    assert remaining.id == first
    assert remaining.attempts == 1
    assert "500" in remaining.last_error

    for _ in range(sync_engine.max_attempts - 1):
        remote_server.fail_once("PATCH", "/documents/bad", 500)
        result = await sync_engine.sync_pending_items()

    assert result.dead_lettered == 1
    assert await local_store.count_pending() == 0
    assert remote_server.document("packages", "bad")["status"] == "pending_pickup"


@pytest.mark.asyncio
async def test_unreachable_store_stops_drain_without_charging_attempts(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    await local_store.enqueue_operation(_create("BR1"))
    await local_store.enqueue_operation(_create("BR2"))
    remote_server.unavailable = True

    result = await sync_engine.sync_pending_items()

    assert result.status == SyncStatus.UNREACHABLE
    assert result.applied == 0
    pending = await local_store.list_pending_operations()
    assert len(pending) == 2
    assert all(op.attempts == 0 for op in pending)
    # The drain stopped after the first unreachable call.
    assert len(remote_server.calls) == 1


@pytest.mark.asyncio
async def test_store_lost_mid_drain_reports_interrupted(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
    mocker,
) -> None:
    await local_store.enqueue_operation(_create("BR1"))
    second = await local_store.enqueue_operation(_create("BR2"))

    real_create = sync_engine.remote_store.create_document

    async def create_then_disconnect(*args, **kwargs):
        document = await real_create(*args, **kwargs)
        remote_server.unavailable = True
        return document

    mocker.patch.object(
        sync_engine.remote_store, "create_document", side_effect=create_then_disconnect
    )

    result = await sync_engine.sync_pending_items()

    assert result.status == SyncStatus.INTERRUPTED
    assert result.applied == 1
    [remaining] = await local_store.list_pending_operations()
    assert remaining.id == second
    assert remaining.attempts == 0


@pytest.mark.asyncio
async def test_unknown_kind_is_skipped_and_eventually_dead_lettered(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    db_session: Session,
    remote_server: FakeDocumentServer,
) -> None:
    db_session.add(PendingOperation(kind="legacy_kind", payload={"a": 1}))
    db_session.commit()
    await local_store.enqueue_operation(_create("BR1"))

    result = await sync_engine.sync_pending_items()

    assert result.skipped == 1
    assert result.applied == 1
    [legacy] = await local_store.list_pending_operations()
    assert legacy.kind == "legacy_kind"

    for _ in range(sync_engine.max_attempts - 1):
        result = await sync_engine.sync_pending_items()

    assert result.dead_lettered == 1
    assert await local_store.list_pending_operations() == []
    assert [op.kind for op in await local_store.list_dead_letters()] == ["legacy_kind"]
    assert ("POST", "/collections/packages/documents") in remote_server.calls


@pytest.mark.asyncio
async def test_rejected_operation_is_dead_lettered_after_max_attempts(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
) -> None:
    await local_store.enqueue_operation(_pickup("missing"))

    results = [await sync_engine.sync_pending_items() for _ in range(sync_engine.max_attempts)]

    assert [r.failed for r in results] == [1] * sync_engine.max_attempts
    assert results[-1].dead_lettered == 1
    assert await local_store.count_pending() == 0
    assert await local_store.count_dead_letters() == 1

    # Dead letters are no longer drained.
    assert (await sync_engine.sync_pending_items()).status == SyncStatus.EMPTY


@pytest.mark.asyncio
async def test_replayed_create_counts_as_applied(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    remote_server.seed("packages", "key-1", package_fields())
    await local_store.enqueue_operation(_create("BR123", key="key-1"))

    result = await sync_engine.sync_pending_items()

    assert (result.applied, result.failed) == (1, 0)
    assert await local_store.list_pending_operations() == []
    assert list(remote_server.collections["packages"]) == ["key-1"]


@pytest.mark.asyncio
async def test_create_uses_idempotency_key_as_document_id(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    await local_store.enqueue_operation(_create("BR9", key="abc123"))

    await sync_engine.sync_pending_items()

    assert remote_server.document("packages", "abc123")["tracking_code"] == "BR9"


@pytest.mark.asyncio
async def test_concurrent_syncs_share_one_drain(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    await local_store.enqueue_operation(_create("BR1"))
    await local_store.enqueue_operation(_create("BR2"))

    first, second = await asyncio.gather(
        sync_engine.sync_pending_items(),
        sync_engine.sync_pending_items(),
    )

    assert first == second
    assert first.applied == 2
    assert len(remote_server.writes()) == 2
    assert not sync_engine.drain_in_progress


@pytest.mark.asyncio
async def test_operation_queued_during_drain_is_applied_by_joined_sync(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
    mocker,
) -> None:
    await local_store.enqueue_operation(_create("BR1"))

    started = asyncio.Event()
    release = asyncio.Event()
    real_create = sync_engine.remote_store.create_document

    async def held_create(*args, **kwargs):
        started.set()
        await release.wait()
        return await real_create(*args, **kwargs)

    mocker.patch.object(sync_engine.remote_store, "create_document", side_effect=held_create)

    first = asyncio.create_task(sync_engine.sync_pending_items())
    await started.wait()
    await local_store.enqueue_operation(_create("BR2"))
    joined = asyncio.create_task(sync_engine.sync_pending_items())
    await asyncio.sleep(0)
    release.set()

    result = await joined

    assert result == await first
    assert result.status == SyncStatus.OK
    assert result.applied == 2
    assert await local_store.list_pending_operations() == []
    codes = sorted(doc["tracking_code"] for doc in remote_server.collections["packages"].values())
    assert codes == ["BR1", "BR2"]


@pytest.mark.asyncio
async def test_failed_operation_is_not_retried_by_rerun(
    sync_engine: SyncEngine,
    local_store: LocalBlobStore,
    mocker,
) -> None:
    await local_store.enqueue_operation(_pickup("missing"))

    release = asyncio.Event()
    real_update = sync_engine.remote_store.update_fields

    async def held_update(*args, **kwargs):
        await release.wait()
        return await real_update(*args, **kwargs)

    mocker.patch.object(sync_engine.remote_store, "update_fields", side_effect=held_update)

    first = asyncio.create_task(sync_engine.sync_pending_items())
    await asyncio.sleep(0)
    joined = asyncio.create_task(sync_engine.sync_pending_items())
    await asyncio.sleep(0)
    release.set()

    result = await joined

    assert result == await first
    assert (result.applied, result.failed) == (0, 1)
    [remaining] = await local_store.list_pending_operations()
    assert remaining.attempts == 1
