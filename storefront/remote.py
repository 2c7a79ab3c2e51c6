"""
Remote Collection Backend - key/kind addressed snapshot storage.

The engines only see the ``RecordBackend`` protocol. Adapters translate
their transport into a ``RemoteResult`` and never raise for network or
server trouble, so a failed remote leg can only ever be logged.

Response shapes are normalized here: the generic record API answers with a
bare list, a ``{"entries": [...]}`` page, a ``{"data": [...]}`` wrapper or a
single record depending on endpoint and version. Engines only ever receive
the ``data`` mapping of one ``GenericRecord``.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, ValidationError
from upstash_redis.asyncio import Redis as AsyncRedis

from .errors import (
    ERROR_REMOTE_MALFORMED,
    ERROR_REMOTE_NOT_FOUND,
    ERROR_REMOTE_REJECTED,
    ERROR_REMOTE_UNREACHABLE,
)
from .logging import sanitize_string_for_logging

RECORDS_PATH = "/generis"


class RemoteErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


_DEFAULT_DETAIL = {
    RemoteErrorKind.UNREACHABLE: ERROR_REMOTE_UNREACHABLE,
    RemoteErrorKind.REJECTED: ERROR_REMOTE_REJECTED,
    RemoteErrorKind.NOT_FOUND: ERROR_REMOTE_NOT_FOUND,
    RemoteErrorKind.MALFORMED: ERROR_REMOTE_MALFORMED,
}


@dataclass
class RemoteResult:
    """Outcome of one backend call."""
    ok: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[RemoteErrorKind] = None
    detail: str = ""

    @classmethod
    def success(cls, data: Optional[dict[str, Any]] = None) -> "RemoteResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, kind: RemoteErrorKind, detail: str = "") -> "RemoteResult":
        return cls(ok=False, error=kind, detail=detail or _DEFAULT_DETAIL[kind])


class RecordBackend(Protocol):
    """Remote store addressed by (key, kind)."""

    async def fetch(self, key: str, kind: int) -> RemoteResult:
        """Fetch the payload stored under (key, kind)."""
        ...

    async def store(self, key: str, kind: int, data: dict[str, Any]) -> RemoteResult:
        """Store payload under (key, kind), replacing any previous one."""
        ...


class GenericRecord(BaseModel):
    """One entry of the generic key/value record API."""
    id: Optional[str | int] = None
    key: str
    kind: int
    data: dict[str, Any]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def normalize_records(payload: Any) -> list[GenericRecord]:
    """Normalize any known list/record response shape into records.

    Raises:
        ValueError: The payload matches none of the known shapes or a record
            fails validation (pydantic's ValidationError is a ValueError).
    """
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("entries"), list):
        items = payload["entries"]
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    elif isinstance(payload, dict) and "key" in payload and "kind" in payload:
        items = [payload]
    else:
        raise ValueError(f"Unrecognized record payload: {type(payload).__name__}")
    return [GenericRecord.model_validate(item) for item in items]


def select_record(records: list[GenericRecord], key: str, kind: int) -> RemoteResult:
    """Pick the record for (key, kind) out of a normalized list."""
    matching = [r for r in records if r.key == key and r.kind == kind]
    if not matching:
        return RemoteResult.failure(RemoteErrorKind.NOT_FOUND)
    return RemoteResult.success(matching[0].data)


class HttpRecordBackend:
    """
    Generic record API over HTTP.

    Endpoints:
    - GET  /generis?key=...&kind=...&limit=1
    - POST /generis  {"key", "kind", "data"}

    Responses use the ``{"state": "ok" | "error", "result": ...}`` envelope.
    Timeouts are enforced by the httpx transport.
    """

    def __init__(
        self,
        endpoint: str,
        api_version: str = "v1",
        auth_token: str = "",
        merchant: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = f"{endpoint.rstrip('/')}/api/{api_version}"
        self.auth_token = auth_token
        self.merchant = merchant
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if self.merchant:
            headers["client-id"] = f"m-{self.merchant}"
        return headers

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazily create one shared client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, **kwargs: Any) -> tuple[Optional[Any], Optional[RemoteResult]]:
        """Send a request and unwrap the envelope.

        Returns (payload, None) on success or (None, failure).
        """
        try:
            response = await self._get_http_client().request(method, RECORDS_PATH, **kwargs)
        except httpx.HTTPError as e:
            return None, RemoteResult.failure(RemoteErrorKind.UNREACHABLE, f"{type(e).__name__}: {e}")

        if response.status_code == 404:
            return None, RemoteResult.failure(RemoteErrorKind.NOT_FOUND)
        if response.is_error:
            return None, RemoteResult.failure(
                RemoteErrorKind.REJECTED,
                f"HTTP {response.status_code}: {sanitize_string_for_logging(response.text)}",
            )

        try:
            body = response.json()
        except ValueError:
            return None, RemoteResult.failure(RemoteErrorKind.MALFORMED, "Response is not JSON")

        if isinstance(body, dict) and "state" in body:
            if body["state"] != "ok":
                return None, RemoteResult.failure(
                    RemoteErrorKind.REJECTED, sanitize_string_for_logging(str(body.get("data")))
                )
            payload = body.get("result")
            if payload is None:
                payload = body.get("data")
            return payload, None
        return body, None

    async def fetch(self, key: str, kind: int) -> RemoteResult:
        payload, failure = await self._request(
            "GET", params={"key": key, "kind": kind, "limit": 1}
        )
        if failure is not None:
            return failure
        if payload is None or payload == []:
            return RemoteResult.failure(RemoteErrorKind.NOT_FOUND)
        try:
            records = normalize_records(payload)
        except ValueError as e:
            return RemoteResult.failure(RemoteErrorKind.MALFORMED, str(e))
        return select_record(records, key, kind)

    async def store(self, key: str, kind: int, data: dict[str, Any]) -> RemoteResult:
        payload, failure = await self._request(
            "POST", json={"key": key, "kind": kind, "data": data}
        )
        if failure is not None:
            return failure
        return RemoteResult.success(payload if isinstance(payload, dict) else None)


class RedisRecordBackend:
    """
    Records kept in Upstash Redis as JSON, one key per (kind, key).

    Key layout: ``generic:{kind}:{key}``. An optional TTL lets abandoned
    snapshots expire like the server-side carts do.
    """

    KEY_PREFIX = "generic:"

    def __init__(self, redis: AsyncRedis, ttl: Optional[int] = None) -> None:
        self.redis = redis
        self.ttl = ttl

    @classmethod
    def redis_key(cls, key: str, kind: int) -> str:
        return f"{cls.KEY_PREFIX}{kind}:{key}"

    async def fetch(self, key: str, kind: int) -> RemoteResult:
        try:
            raw = await self.redis.get(self.redis_key(key, kind))
        except Exception as e:
            return RemoteResult.failure(RemoteErrorKind.UNREACHABLE, f"{type(e).__name__}: {e}")

        if not raw:
            return RemoteResult.failure(RemoteErrorKind.NOT_FOUND)
        try:
            records = normalize_records(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError, ValidationError) as e:
            return RemoteResult.failure(RemoteErrorKind.MALFORMED, str(e))
        return select_record(records, key, kind)

    async def store(self, key: str, kind: int, data: dict[str, Any]) -> RemoteResult:
        record = {
            "key": key,
            "kind": kind,
            "data": data,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.redis.set(self.redis_key(key, kind), json.dumps(record), ex=self.ttl)
        except Exception as e:
            return RemoteResult.failure(RemoteErrorKind.UNREACHABLE, f"{type(e).__name__}: {e}")
        return RemoteResult.success()
