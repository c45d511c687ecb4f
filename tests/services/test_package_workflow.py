"""Tests for the registration, triage, notification and pickup workflow."""

from datetime import UTC, datetime

import pytest

from condo_parcels.core.settings import settings
from condo_parcels.schemas.package import (
    PackageLocation,
    PackageRegister,
    PackageStatus,
    PackageType,
)
from condo_parcels.services.local_store import InvalidPhotoError, LocalBlobStore
from condo_parcels.services.package_workflow import (
    InvalidStatusTransition,
    PackageNotFoundError,
    PackageWorkflowService,
    ensure_transition,
)
from condo_parcels.services.remote_store import RemoteDocumentStore
from condo_parcels.services.sync_engine import SyncEngine
from tests.fakes import (
    PHOTO_BYTES,
    PHOTO_DATA_URL,
    SIGNATURE_DATA_URL,
    FakeDocumentServer,
    package_fields,
)


@pytest.fixture
def workflow(
    local_store: LocalBlobStore, remote_store: RemoteDocumentStore
) -> PackageWorkflowService:
    return PackageWorkflowService(local_store, remote_store)


def _registration(**overrides) -> PackageRegister:
    data = {
        "tracking_code": "BR123456789",
        "unit_id": "101",
        "unit_block": "A",
        "photo_base64": PHOTO_DATA_URL,
    }
    data.update(overrides)
    return PackageRegister(**data)


@pytest.mark.asyncio
async def test_register_package_online(
    workflow: PackageWorkflowService,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    result = await workflow.register_package(_registration())

    assert result.queued is False
    assert result.status == PackageStatus.PENDING_NOTIFICATION
    document = remote_server.document("packages", result.package_id)
    assert document["tracking_code"] == "BR123456789"
    assert document["location"] == "sector"
    assert document["local_photo_id"] == result.photo_id
    assert document["idempotency_key"] == result.package_id

    photo = await local_store.get_photo_record(result.photo_id)
    assert photo.content == PHOTO_BYTES
    assert photo.package_ref == result.package_id


@pytest.mark.asyncio
async def test_perishable_package_stays_at_front_desk(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    result = await workflow.register_package(_registration(type=PackageType.PERISHABLE))

    document = remote_server.document("packages", result.package_id)
    assert document["type"] == "perishable"
    assert document["location"] == "front_desk"


@pytest.mark.asyncio
async def test_register_requires_photo_unless_triage(workflow: PackageWorkflowService) -> None:
    with pytest.raises(InvalidPhotoError):
        await workflow.register_package(_registration(photo_base64=None))

    result = await workflow.register_package(
        _registration(photo_base64=None, needs_triage=True)
    )
    assert result.status == PackageStatus.AWAITING_TRIAGE
    assert result.photo_id is None


@pytest.mark.asyncio
async def test_register_offline_queues_create(
    workflow: PackageWorkflowService,
    local_store: LocalBlobStore,
    remote_store: RemoteDocumentStore,
    remote_server: FakeDocumentServer,
) -> None:
    remote_server.unavailable = True

    result = await workflow.register_package(_registration())

    assert result.queued is True
    [operation] = await local_store.list_pending_operations()
    assert operation.kind == "create_package"
    assert operation.payload["idempotency_key"] == result.package_id
    assert operation.payload["local_photo_id"] == result.photo_id
    # The photo is kept locally even though the document is not written yet.
    assert await local_store.get_photo(result.photo_id) == PHOTO_BYTES

    remote_server.unavailable = False
    sync_result = await SyncEngine(local_store, remote_store).sync_pending_items()

    assert sync_result.applied == 1
    assert remote_server.document("packages", result.package_id)["unit_id"] == "101"


@pytest.mark.asyncio
async def test_oversized_photo_is_rejected(
    workflow: PackageWorkflowService, mocker
) -> None:
    mocker.patch.object(settings, "max_photo_bytes", 4)

    with pytest.raises(InvalidPhotoError):
        await workflow.register_package(_registration())


@pytest.mark.asyncio
async def test_triage_attaches_photo_and_advances(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "pkg-1", package_fields(status="awaiting_triage"))

    photo_id = await workflow.triage_package("pkg-1", PHOTO_DATA_URL)

    document = remote_server.document("packages", "pkg-1")
    assert document["status"] == "pending_notification"
    assert document["local_photo_id"] == photo_id

    with pytest.raises(InvalidStatusTransition):
        await workflow.triage_package("pkg-1", PHOTO_DATA_URL)


@pytest.mark.asyncio
async def test_triage_keeps_photo_captured_at_intake(
    workflow: PackageWorkflowService,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    registered = await workflow.register_package(_registration(needs_triage=True))
    assert registered.status == PackageStatus.AWAITING_TRIAGE

    photo_id = await workflow.triage_package(registered.package_id, PHOTO_DATA_URL)

    assert photo_id == registered.photo_id
    document = remote_server.document("packages", registered.package_id)
    assert document["status"] == "pending_notification"
    assert document["local_photo_id"] == registered.photo_id
    # The second capture is not stored.
    assert await local_store.get_photo(registered.photo_id) == PHOTO_BYTES

    await workflow.confirm_notification(registered.package_id)
    assert remote_server.document("packages", registered.package_id)["status"] == "pending_pickup"


@pytest.mark.asyncio
async def test_triage_without_any_photo_is_rejected(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "pkg-1", package_fields(status="awaiting_triage"))

    with pytest.raises(InvalidPhotoError):
        await workflow.triage_package("pkg-1")

    assert remote_server.document("packages", "pkg-1")["status"] == "awaiting_triage"


@pytest.mark.asyncio
async def test_confirm_notification_moves_to_pickup(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "pkg-1", package_fields())

    await workflow.confirm_notification("pkg-1")

    document = remote_server.document("packages", "pkg-1")
    assert document["status"] == "pending_pickup"
    assert document["notified_at"]

    with pytest.raises(InvalidStatusTransition):
        await workflow.confirm_notification("pkg-1")


@pytest.mark.asyncio
async def test_missing_package_raises_not_found(workflow: PackageWorkflowService) -> None:
    with pytest.raises(PackageNotFoundError):
        await workflow.confirm_notification("nope")


@pytest.mark.asyncio
async def test_list_and_search_pickup(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "a", package_fields(status="pending_pickup"))
    remote_server.seed("packages", "b", package_fields(status="pending_pickup", unit_id="202"))
    remote_server.seed("packages", "c", package_fields(status="retired"))

    assert {p["id"] for p in await workflow.list_packages()} == {"a", "b", "c"}
    assert [p["id"] for p in await workflow.list_packages(status=PackageStatus.RETIRED)] == ["c"]
    assert [p["id"] for p in await workflow.search_pickup("101")] == ["a"]


@pytest.mark.asyncio
async def test_confirm_pickup_retires_all_packages(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "a", package_fields(status="pending_pickup"))
    remote_server.seed("packages", "b", package_fields(status="pending_pickup"))

    result = await workflow.confirm_pickup(["a", "b", "a"], "Ana Souza", SIGNATURE_DATA_URL)

    assert (result.retired, result.queued) == (2, False)
    for package_id in ("a", "b"):
        document = remote_server.document("packages", package_id)
        assert document["status"] == "retired"
        assert document["retired_by"] == "Ana Souza"
        assert document["signature_base64"] == SIGNATURE_DATA_URL
    assert remote_server.writes() == [("POST", "/batch")]


@pytest.mark.asyncio
async def test_confirm_pickup_rejects_package_not_awaiting_pickup(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "a", package_fields(status="pending_pickup"))
    remote_server.seed("packages", "b", package_fields(status="pending_notification"))

    with pytest.raises(InvalidStatusTransition):
        await workflow.confirm_pickup(["a", "b"], "Ana Souza", SIGNATURE_DATA_URL)

    assert remote_server.document("packages", "a")["status"] == "pending_pickup"


@pytest.mark.asyncio
async def test_confirm_pickup_offline_queues_one_update_per_package(
    workflow: PackageWorkflowService,
    local_store: LocalBlobStore,
    remote_server: FakeDocumentServer,
) -> None:
    remote_server.unavailable = True

    result = await workflow.confirm_pickup(["a", "b"], "Ana Souza", SIGNATURE_DATA_URL)

    assert (result.retired, result.queued) == (2, True)
    operations = await local_store.list_pending_operations()
    assert [op.kind for op in operations] == ["apply_pickup_update"] * 2
    assert [op.payload["packageId"] for op in operations] == ["a", "b"]
    assert operations[0].payload["updates"]["status"] == "retired"


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (PackageStatus.PENDING_NOTIFICATION, PackageStatus.AWAITING_TRIAGE),
        (PackageStatus.AWAITING_TRIAGE, PackageStatus.PENDING_PICKUP),
        (PackageStatus.PENDING_NOTIFICATION, PackageStatus.RETIRED),
        (PackageStatus.RETIRED, PackageStatus.RETIRED),
    ],
)
def test_transitions_only_move_one_step_forward(
    current: PackageStatus, target: PackageStatus
) -> None:
    with pytest.raises(InvalidStatusTransition):
        ensure_transition(current, target)


@pytest.mark.asyncio
async def test_package_stats_counts_by_status_location_and_unit(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "p1", package_fields(status="retired"))
    remote_server.seed("packages", "p2", package_fields(status="pending_pickup"))
    remote_server.seed(
        "packages",
        "p3",
        package_fields(
            status="pending_pickup", unit_id="202", type="perishable", location="front_desk"
        ),
    )
    remote_server.seed("packages", "p4", package_fields(status="mislabelled"))

    stats = await workflow.package_stats()

    assert stats.total == 3
    assert stats.perishable == 1
    assert stats.by_status == {PackageStatus.RETIRED: 1, PackageStatus.PENDING_PICKUP: 2}
    assert stats.by_location == {PackageLocation.SECTOR: 2, PackageLocation.FRONT_DESK: 1}
    assert stats.by_unit["101"].model_dump() == {
        "total": 2,
        "retired": 1,
        "pending_pickup": 1,
        "perishable": 0,
    }
    assert stats.by_unit["202"].perishable == 1


@pytest.mark.asyncio
async def test_package_stats_filters_by_creation_period(
    workflow: PackageWorkflowService, remote_server: FakeDocumentServer
) -> None:
    remote_server.seed("packages", "sep", package_fields(created_at="2026-09-30T23:00:00+00:00"))
    remote_server.seed("packages", "oct", package_fields(created_at="2026-10-10T12:00:00+00:00"))
    remote_server.seed("packages", "nov", package_fields(created_at="2026-11-01T00:30:00+00:00"))

    stats = await workflow.package_stats(
        since=datetime(2026, 10, 1),
        until=datetime(2026, 10, 31, 23, 59, 59, tzinfo=UTC),
    )

    assert stats.total == 1
