"""
Record store clients for bizmap.

Two implementations of the same two-operation contract (`fetch_all` and
`insert`) over the `businesses` collection:

- `PostgresRecordStore` talks to the hosted Postgres datastore through a
  psycopg async pool. Used by the relay and by trusted tooling.
- `RelayRecordStore` talks to the relay over HTTP, for clients that must not
  hold datastore credentials.

Both make exactly one attempt per call and cache nothing. Driver errors are
translated into `StoreUnavailable` (connection problems),
`ValidationError` (the store refused the payload) or a plain `StoreError`
(anything else, such as a missing table or a malformed relay response).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Mapping, Optional, Protocol, runtime_checkable

import httpx
import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from pydantic import ValidationError as PydanticValidationError

from bizmap.config import Settings, get_settings
from bizmap.domain.models import BusinessRecord, NewBusinessRecord
from bizmap.errors import StoreError, StoreUnavailable, ValidationError
from bizmap.infrastructure.db_factory import create_async_pool, describe_store
from bizmap.utils.logging import get_logger

log = get_logger(__name__)

COLUMNS = (
    "id",
    "name",
    "category",
    "lng",
    "lat",
    "power_type",
    "accepts_card_payment",
    "photo_url",
)


@runtime_checkable
class RecordStore(Protocol):
    """
    Contract every record store client implements.

    Methods
    -------
    fetch_all()
        Every record in store order. Raises `StoreError`
        (`StoreUnavailable` when the store cannot be reached).
    insert(record)
        Persist one record and return it with its store-assigned id. Raises
        `ValidationError`, `StoreUnavailable` or another `StoreError`.
    """

    async def fetch_all(self) -> List[BusinessRecord]:
        ...

    async def insert(self, record: NewBusinessRecord) -> BusinessRecord:
        ...


def _validation_message(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_new_record(payload: Mapping[str, Any]) -> NewBusinessRecord:
    """
    Build a `NewBusinessRecord` from a wire or row mapping.

    Raises
    ------
    ValidationError
        If required fields are missing or malformed.
    """
    try:
        return NewBusinessRecord.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(_validation_message(exc)) from exc


def _records_from_rows(rows: List[Mapping[str, Any]], source: str) -> List[BusinessRecord]:
    records: List[BusinessRecord] = []
    for row in rows:
        if not isinstance(row, Mapping):
            log.warning("Skipping malformed business row", extra={"source": source, "reason": "not an object"})
            continue
        try:
            records.append(BusinessRecord.model_validate(dict(row)))
        except PydanticValidationError as exc:
            log.warning(
                "Skipping malformed business row",
                extra={"source": source, "row_id": row.get("id"), "reason": _validation_message(exc)},
            )
    return records


class PostgresRecordStore:
    """
    Record store backed by the hosted Postgres datastore.

    The pool is created lazily from settings unless one is injected. Use as an
    async context manager, or call `open()` / `close()` explicitly.
    """

    def __init__(
        self,
        pool: Optional[AsyncConnectionPool] = None,
        settings: Optional[Settings] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._dsn_override = dsn_override
        self._pool = pool
        self._owns_pool = pool is None
        self.table = self._settings.store_table

    def _get_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            self._pool = create_async_pool(self._settings, dsn_override=self._dsn_override)
        return self._pool

    async def open(self) -> None:
        pool = self._get_pool()
        await pool.open()
        log.info("Record store pool opened", extra={"store": describe_store(self._settings)})

    async def close(self) -> None:
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "PostgresRecordStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        try:
            async with self._get_pool().connection() as conn:
                yield conn
        except (psycopg.IntegrityError, psycopg.DataError) as exc:
            raise ValidationError(str(exc).strip()) from exc
        except (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout) as exc:
            raise StoreUnavailable(f"Datastore unreachable: {str(exc).strip()}") from exc
        except psycopg.Error as exc:
            # e.g. UndefinedTable from a wrong STORE_TABLE
            raise StoreError(f"Datastore error: {str(exc).strip()}") from exc

    def _returning(self) -> sql.Composable:
        return sql.SQL(", ").join(sql.Identifier(c) for c in COLUMNS)

    async def fetch_all(self) -> List[BusinessRecord]:
        query = sql.SQL("SELECT {} FROM {}").format(self._returning(), sql.Identifier(self.table))
        async with self._connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query)
                rows = await cur.fetchall()
        log.debug("Fetched business rows", extra={"rows": len(rows), "table": self.table})
        return _records_from_rows(rows, source=self.table)

    async def insert(self, record: NewBusinessRecord) -> BusinessRecord:
        row = record.to_row()
        columns = list(row)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {}").format(
            sql.Identifier(self.table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
            self._returning(),
        )
        async with self._connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, [row[c] for c in columns])
                created = await cur.fetchone()
        if created is None:
            raise StoreError("Datastore returned no row for insert")
        log.debug("Inserted business row", extra={"id": created["id"], "table": self.table})
        return BusinessRecord.model_validate(created)


_RELAY_ERRORS = {
    StoreUnavailable.code: StoreUnavailable,
    ValidationError.code: ValidationError,
}


class RelayRecordStore:
    """
    Record store that forwards to the relay's `/businesses` endpoints.

    Usage:
        async with RelayRecordStore("http://localhost:3001") as store:
            records = await store.fetch_all()
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "RelayRecordStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise StoreUnavailable(f"Relay unreachable: {exc}") from exc
        if response.status_code >= 500:
            raise StoreUnavailable(f"Relay error {response.status_code}: {response.text[:200]}")
        if response.status_code >= 400:
            raise StoreError(f"Relay rejected request {response.status_code}: {response.text[:200]}")
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise StoreUnavailable(
                f"Relay returned a non-JSON response: {response.text[:200]}"
            ) from exc

    async def fetch_all(self) -> List[BusinessRecord]:
        response = await self._request("GET", "/businesses")
        body = self._decode(response)
        if body is None:
            return []
        if not isinstance(body, list):
            raise StoreError(f"Relay returned {type(body).__name__} instead of a list of businesses")
        return _records_from_rows(body, source=self.base_url)

    async def insert(self, record: NewBusinessRecord) -> BusinessRecord:
        response = await self._request("POST", "/businesses", json=record.to_wire())
        body = self._decode(response) or {}
        if not isinstance(body, dict):
            raise StoreError(f"Relay returned {type(body).__name__} instead of a result object")
        error = body.get("error")
        if error:
            if not isinstance(error, dict):
                raise StoreError(str(error))
            exc_type = _RELAY_ERRORS.get(str(error.get("code")), StoreError)
            raise exc_type(error.get("message") or "Relay reported an error")
        data = body.get("data")
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise StoreError("Relay returned no record for insert")
        try:
            return BusinessRecord.model_validate(data)
        except PydanticValidationError as exc:
            raise StoreError(f"Relay returned a malformed record: {_validation_message(exc)}") from exc


def store_from_settings(settings: Optional[Settings] = None, via_relay: bool = False) -> RecordStore:
    """
    Pick the store client a host application should use.

    Raises
    ------
    ConfigMissing
        When the credentials for the chosen path are absent.
    """
    settings = settings or get_settings()
    if via_relay:
        settings.require_relay()
        return RelayRecordStore(settings.relay_url)
    settings.require_store()
    return PostgresRecordStore(settings=settings)


__all__ = [
    "COLUMNS",
    "PostgresRecordStore",
    "RecordStore",
    "RelayRecordStore",
    "parse_new_record",
    "store_from_settings",
]
