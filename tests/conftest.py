# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CONNECTIVITY_PROBE_ENABLED", "false")

from condo_parcels.api.v1.dependencies import (
    get_connectivity_dep,
    get_remote_store_dep,
    get_sync_engine_dep,
)
from condo_parcels.db.session import Base
from condo_parcels.db.session import get_db as app_get_session
from condo_parcels.main import app as fastapi_app
from condo_parcels.services.connectivity import ConnectivityMonitor
from condo_parcels.services.local_store import LocalBlobStore
from condo_parcels.services.remote_store import RemoteDocumentStore, RemoteStoreConfig
from condo_parcels.services.sync_engine import SyncEngine
from tests.fakes import REMOTE_BASE_URL, FakeDocumentServer

TEST_DB_URL = "sqlite://"

@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def remote_server() -> FakeDocumentServer:
    return FakeDocumentServer()


@pytest.fixture()
def remote_config() -> RemoteStoreConfig:
    return RemoteStoreConfig(
        base_url=REMOTE_BASE_URL,
        api_key=None,
        client_id="front-desk-test",
        token_ttl_seconds=300,
        timeout_seconds=5.0,
    )


@pytest.fixture()
def remote_store(
    remote_server: FakeDocumentServer, remote_config: RemoteStoreConfig
) -> RemoteDocumentStore:
    return RemoteDocumentStore(
        config=remote_config,
        transport=httpx.MockTransport(remote_server.handle),
    )


@pytest.fixture()
def local_store(db_session: Session) -> LocalBlobStore:
    return LocalBlobStore(db_session=db_session)


@dataclass
class SyncStack:
    engine: SyncEngine
    monitor: ConnectivityMonitor


@pytest.fixture()
def sync_stack(local_store: LocalBlobStore, remote_store: RemoteDocumentStore) -> SyncStack:
    """Sync engine and connectivity monitor wired to each other."""
    monitor: ConnectivityMonitor | None = None
    sync_engine = SyncEngine(
        local_store,
        remote_store,
        is_online=lambda: monitor is None or monitor.is_online,
        max_attempts=3,
    )
    monitor = ConnectivityMonitor(sync_engine, remote_store, initially_online=True)
    return SyncStack(engine=sync_engine, monitor=monitor)


@pytest.fixture()
def sync_engine(sync_stack: SyncStack) -> SyncEngine:
    return sync_stack.engine


@pytest.fixture()
def connectivity(sync_stack: SyncStack) -> ConnectivityMonitor:
    return sync_stack.monitor


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def override_service_dependencies(
    app: FastAPI,
    remote_store: RemoteDocumentStore,
    sync_stack: SyncStack,
) -> Iterator[None]:
    overrides = {
        get_remote_store_dep: lambda: remote_store,
        get_sync_engine_dep: lambda: sync_stack.engine,
        get_connectivity_dep: lambda: sync_stack.monitor,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def seeded_unit(remote_server: FakeDocumentServer) -> dict[str, Any]:
    unit = {"block": "A", "residents": ["Ana Souza"], "phone": "5511999990000"}
    remote_server.seed("units", "101", unit)
    return {"id": "101", **unit}


