"""Client for the remote document store.

The remote store is the authoritative home of the ``packages``, ``units`` and
``users`` collections. This module provides the RemoteDocumentStore class that
wraps its HTTP API:

- Document create, get, update and delete
- Field equality/range queries
- Atomic batch writes
- A cheap health probe used for connectivity detection

Failures are mapped onto a small exception taxonomy so callers can tell
"the store could not be reached" apart from "the store rejected the request".
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from jose import jwt

from condo_parcels.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502
HTTP_SERVICE_UNAVAILABLE = 503
HTTP_GATEWAY_TIMEOUT = 504

# Answers meaning the store itself cannot be reached right now.
UNAVAILABLE_STATUSES = frozenset(
    {HTTP_BAD_GATEWAY, HTTP_SERVICE_UNAVAILABLE, HTTP_GATEWAY_TIMEOUT}
)

PACKAGES = "packages"
UNITS = "units"
USERS = "users"

QUERY_OPERATORS = frozenset({"==", "<", "<=", ">", ">="})


class RemoteStoreError(RuntimeError):
    """Base exception raised for remote document store failures."""


class RemoteUnavailableError(RemoteStoreError):
    """Raised when there is no working network path to the store.

    Covers transport errors, timeouts and 502/503/504 responses.
    """


class RemoteRejectedError(RemoteStoreError):
    """Raised when the store answered but refused the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DocumentNotFoundError(RemoteRejectedError):
    """Raised when the referenced document does not exist."""


class DocumentConflictError(RemoteRejectedError):
    """Raised when creating a document whose id already exists."""


class RemoteServerError(RemoteRejectedError):
    """Raised when the store fails on one specific request (other 5xx)."""


@dataclass(frozen=True)
class RemoteStoreConfig:
    """Immutable configuration for remote store access."""

    base_url: str
    api_key: str | None
    client_id: str
    token_ttl_seconds: int
    timeout_seconds: float


@dataclass(frozen=True)
class Document:
    """Document returned by the store."""

    id: str
    fields: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a single mapping with the id under ``"id"``."""
        return {**self.fields, "id": self.id}


@dataclass(frozen=True)
class QueryFilter:
    """Single ``field <op> value`` condition."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in QUERY_OPERATORS:
            raise ValueError(f"Unsupported query operator: {self.op}")


@dataclass(frozen=True)
class BatchWrite:
    """One write inside an atomic batch."""

    op: str  # 'create', 'update' or 'delete'
    collection: str
    document_id: str
    fields: Mapping[str, Any] | None = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "op": self.op,
            "collection": self.collection,
            "id": self.document_id,
        }
        if self.fields is not None:
            body["fields"] = dict(self.fields)
        return body


@dataclass
class RemoteStoreStats:
    """Request counters, exposed for diagnostics."""

    request_count: int = 0
    error_count: int = 0
    unavailable_count: int = 0
    endpoint_counts: dict[str, int] = field(default_factory=dict)

    def record(self, endpoint: str, *, error: bool, unavailable: bool) -> None:
        self.request_count += 1
        self.endpoint_counts[endpoint] = self.endpoint_counts.get(endpoint, 0) + 1
        if error:
            self.error_count += 1
        if unavailable:
            self.unavailable_count += 1


def load_remote_store_config() -> RemoteStoreConfig:
    """Build configuration object from global settings."""

    return RemoteStoreConfig(
        base_url=settings.remote_store_base_url,
        api_key=settings.remote_store_api_key,
        client_id=settings.remote_store_client_id,
        token_ttl_seconds=settings.remote_store_token_ttl_seconds,
        timeout_seconds=float(settings.remote_store_http_timeout_seconds),
    )


class RemoteDocumentStore:
    """HTTP client wrapper for the remote document store."""

    def __init__(
        self,
        config: RemoteStoreConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_remote_store_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self.stats = RemoteStoreStats()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _build_auth_headers(self) -> dict[str, str]:
        headers = {"X-Client-Id": self.config.client_id}

        if self.config.api_key:
            now = int(time.time())
            payload = {
                "iss": self.config.client_id,
                "iat": now,
                "exp": now + max(1, self.config.token_ttl_seconds),
                "jti": secrets.token_hex(8),
            }
            token = jwt.encode(payload, self.config.api_key, algorithm="HS256")
            headers["Authorization"] = f"Bearer {token}"

        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Any | None = None,
        *,
        allow_statuses: Sequence[int] = (),
    ) -> httpx.Response:
        client = await self._ensure_client()
        endpoint = f"{method} {path}"

        try:
            response = await client.request(
                method,
                path,
                json=json_data,
                headers=self._build_auth_headers(),
            )
        except httpx.HTTPError as exc:
            self.stats.record(endpoint, error=True, unavailable=True)
            raise RemoteUnavailableError(f"Remote store request failed: {exc}") from exc

        status_code = response.status_code
        if status_code in UNAVAILABLE_STATUSES:
            self.stats.record(endpoint, error=True, unavailable=True)
            raise RemoteUnavailableError(f"Remote store responded with {status_code}")

        if status_code >= 400 and status_code not in allow_statuses:
            self.stats.record(endpoint, error=True, unavailable=False)
            detail = _error_detail(response)
            if status_code == HTTP_NOT_FOUND:
                raise DocumentNotFoundError(f"{path}: {detail}", status_code)
            if status_code == HTTP_CONFLICT:
                raise DocumentConflictError(f"{path}: {detail}", status_code)
            if status_code >= HTTP_INTERNAL_SERVER_ERROR:
                raise RemoteServerError(
                    f"Remote store failed on {endpoint} ({status_code}): {detail}",
                    status_code,
                )
            raise RemoteRejectedError(
                f"Remote store rejected {endpoint} ({status_code}): {detail}",
                status_code,
            )

        self.stats.record(endpoint, error=False, unavailable=False)
        return response

    async def ping(self) -> bool:
        """Return True if the store answers its health endpoint."""
        try:
            response = await self._request("GET", "/health")
        except RemoteStoreError as exc:
            logger.debug("Remote store health probe failed: %s", exc)
            return False
        return response.status_code == HTTP_OK

    async def create_document(
        self,
        collection: str,
        fields: Mapping[str, Any],
        document_id: str | None = None,
    ) -> Document:
        """Create a document, letting the store assign an id when none is given.

        Raises:
            DocumentConflictError: If ``document_id`` already exists.
        """
        body: dict[str, Any] = {"fields": dict(fields)}
        if document_id is not None:
            body["id"] = document_id

        response = await self._request("POST", f"/collections/{collection}/documents", body)
        return _parse_document(response.json())

    async def get_document(self, collection: str, document_id: str) -> Document | None:
        """Fetch a document by id, returning None if it does not exist."""
        response = await self._request(
            "GET",
            f"/collections/{collection}/documents/{document_id}",
            allow_statuses=(HTTP_NOT_FOUND,),
        )
        if response.status_code == HTTP_NOT_FOUND:
            return None
        return _parse_document(response.json())

    async def update_fields(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None:
        """Overwrite the given fields on an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        await self._request(
            "PATCH",
            f"/collections/{collection}/documents/{document_id}",
            {"fields": dict(fields)},
        )

    async def delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document; a missing document is not an error."""
        await self._request(
            "DELETE",
            f"/collections/{collection}/documents/{document_id}",
            allow_statuses=(HTTP_NOT_FOUND,),
        )

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        """Return documents matching every filter."""
        body: dict[str, Any] = {
            "filters": [{"field": f.field, "op": f.op, "value": f.value} for f in filters],
        }
        if order_by is not None:
            body["order_by"] = order_by
        if limit is not None:
            body["limit"] = limit

        response = await self._request("POST", f"/collections/{collection}:query", body)
        return [_parse_document(item) for item in response.json().get("documents", [])]

    async def batch_write(self, writes: Sequence[BatchWrite]) -> None:
        """Apply several writes as one atomic unit."""
        if not writes:
            return
        await self._request("POST", "/batch", {"writes": [w.to_json() for w in writes]})

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _parse_document(body: Mapping[str, Any]) -> Document:
    try:
        return Document(id=str(body["id"]), fields=dict(body.get("fields") or {}))
    except (KeyError, TypeError) as exc:
        raise RemoteStoreError(f"Malformed document in remote store response: {body!r}") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, Mapping):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


class _RemoteStoreSingleton:
    """Singleton wrapper for RemoteDocumentStore."""

    _instance: RemoteDocumentStore | None = None

    @classmethod
    def get_instance(cls) -> RemoteDocumentStore:
        """Get or create the singleton RemoteDocumentStore instance."""
        if cls._instance is None:
            cls._instance = RemoteDocumentStore()
        return cls._instance


def get_remote_store() -> RemoteDocumentStore:
    """Return a singleton remote store client."""
    return _RemoteStoreSingleton.get_instance()
