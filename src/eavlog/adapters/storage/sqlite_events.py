"""SQLite storage adapters for structured log events."""

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from eavlog.adapters.storage.queries import (
    INSERT_ATTRIBUTE,
    INSERT_EVENT,
    assemble_events,
    attribute_params,
    build_attribute_selects,
    build_event_select,
    split_event,
    stored_value,
)
from eavlog.adapters.storage.schema_store import (
    EVENTS_SCHEMA,
    AsyncSchemaStore,
    SchemaStore,
)
from eavlog.adapters.storage.sqlite_base import AsyncSQLiteDatabase, SQLiteDatabase
from eavlog.core.errors import DecodingError
from eavlog.core.models import AttributeName, Event, QueryFilter
from eavlog.core.registry import NameRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def decode_payload(payload: bytes | str) -> dict[str, Any]:
    """Decode a JSON event payload as emitted by logging front-ends.

    Raises:
        DecodingError: The payload is not valid JSON or not a JSON object.
    """
    try:
        decoded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodingError(f"malformed event payload: {exc}") from exc
    if not isinstance(decoded, dict):
        raise DecodingError(
            f"event payload must be a JSON object, got {type(decoded).__name__}"
        )
    return decoded


class SQLiteEventStore:
    """SQLite implementation of EventStoragePort.

    Each event becomes one row in ``events`` plus one row per attribute in
    ``event_attributes``, written in a single transaction. Attribute names
    found in the registry are stored by id; new names are stored literally
    until promoted with ``intern`` and persisted with ``save_schema``.

    All calls block until done and may come from several threads. For
    :memory: databases one connection is shared and transactions on it run
    one at a time; for files a connection is opened per call.
    """

    def __init__(self, db_path: str, clock: Clock = time.time) -> None:
        self._db_path = db_path
        self._clock = clock
        self._db = SQLiteDatabase(db_path, EVENTS_SCHEMA)
        self._schema_store = SchemaStore()
        self._registry: NameRegistry | None = None

    @property
    def registry(self) -> NameRegistry:
        """The attribute name registry, loaded from the database on first use."""
        if self._registry is None:
            self.reload_schema()
        assert self._registry is not None
        return self._registry

    def reload_schema(self) -> NameRegistry:
        """Replace the in-memory registry with the persisted one.

        Raises:
            SchemaConflictError: The persisted registry is inconsistent.
        """
        with self._db.transaction("load schema") as conn:
            self._registry = self._schema_store.load(conn)
        return self._registry

    def save_schema(self) -> None:
        """Persist every registry entry, overwriting existing rows."""
        registry = self.registry
        with self._db.transaction("save schema") as conn:
            self._schema_store.save(conn, registry)

    def intern(self, *names: str) -> list[AttributeName]:
        """Promote ``names`` into the registry (in memory only)."""
        registry = self.registry
        return [registry.intern(name) for name in names]

    def write(self, event: Mapping[str, Any]) -> Event:
        """Persist one event atomically.

        The returned event holds attribute values as ``query`` reads them
        back: numbers as float, tuples as lists, bytes-likes as bytes.

        Raises:
            DecodingError: ``event`` lacks a string ``level`` (nothing written).
            EncodeValueError: An attribute cannot be encoded (rolled back).
            TransactionError: SQLite failed (rolled back).
        """
        level, session, attributes = split_event(event)
        registry = self.registry
        timestamp = self._clock()
        with self._db.transaction("write") as conn:
            cursor = conn.execute(INSERT_EVENT, (timestamp, level, session))
            event_id = cursor.lastrowid
            assert event_id is not None
            stored: dict[str, Any] = {}
            for name, value in attributes.items():
                params = attribute_params(event_id, name, value, registry)
                conn.execute(INSERT_ATTRIBUTE, params)
                stored[name] = stored_value(params)
        logger.debug("Wrote event %d with %d attributes", event_id, len(attributes))
        return Event(
            id=event_id,
            timestamp=timestamp,
            level=level,
            session=session,
            attributes=stored,
        )

    def write_json(self, payload: bytes | str) -> Event:
        """Decode a JSON object payload and persist it with ``write``."""
        return self.write(decode_payload(payload))

    def query(self, filter: QueryFilter | None = None) -> list[Event]:
        """Return the events matching ``filter``, ordered by id ascending.

        Raises:
            DecodeValueError: A stored attribute row cannot be decoded.
            TransactionError: SQLite failed.
        """
        filter = filter or QueryFilter()
        registry = self.registry
        sql, params = build_event_select(filter, registry)
        with self._db.transaction("query") as conn:
            headers = conn.execute(sql, params).fetchall()
            rows: list[Any] = []
            event_ids = [header[0] for header in headers]
            for attr_sql, attr_params in build_attribute_selects(
                filter, registry, event_ids
            ):
                rows.extend(conn.execute(attr_sql, attr_params).fetchall())
        return assemble_events(headers, rows, registry)

    def count(self, filter: QueryFilter | None = None) -> int:
        """Return the number of events matching ``filter``."""
        sql, params = build_event_select(
            filter or QueryFilter(), self.registry, columns="COUNT(*)", ordered=False
        )
        with self._db.transaction("count") as conn:
            row = conn.execute(sql, params).fetchone()
        return row[0] if row else 0

    def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        self._db.close()
        self._registry = None


class AsyncSQLiteEventStore:
    """Asyncio counterpart of SQLiteEventStore, built on aiosqlite.

    Shares the table layout, registry semantics and query construction with
    the sync store. For :memory: databases the async store has its own
    database, separate from any sync store, and concurrent coroutines take
    turns on its single connection.
    """

    def __init__(self, db_path: str, clock: Clock = time.time) -> None:
        self._db_path = db_path
        self._clock = clock
        self._db = AsyncSQLiteDatabase(db_path, EVENTS_SCHEMA)
        self._schema_store = AsyncSchemaStore()
        self._registry: NameRegistry | None = None

    @property
    def registry(self) -> NameRegistry:
        """The attribute name registry.

        Raises:
            RuntimeError: No awaited operation has loaded the registry yet.
        """
        if self._registry is None:
            raise RuntimeError("Registry not loaded; await reload_schema() first")
        return self._registry

    async def _loaded_registry(self) -> NameRegistry:
        if self._registry is None:
            async with self._db.transaction("load schema") as db:
                loaded = await self._schema_store.load(db)
            # Another coroutine may have finished loading while this one waited.
            if self._registry is None:
                self._registry = loaded
        return self._registry

    async def reload_schema(self) -> NameRegistry:
        """Replace the in-memory registry with the persisted one."""
        async with self._db.transaction("load schema") as db:
            self._registry = await self._schema_store.load(db)
        return self._registry

    async def save_schema(self) -> None:
        """Persist every registry entry, overwriting existing rows."""
        registry = await self._loaded_registry()
        async with self._db.transaction("save schema") as db:
            await self._schema_store.save(db, registry)

    async def intern(self, *names: str) -> list[AttributeName]:
        """Promote ``names`` into the registry (in memory only)."""
        registry = await self._loaded_registry()
        return [registry.intern(name) for name in names]

    async def write(self, event: Mapping[str, Any]) -> Event:
        """Persist one event atomically. See SQLiteEventStore.write."""
        level, session, attributes = split_event(event)
        registry = await self._loaded_registry()
        timestamp = self._clock()
        async with self._db.transaction("write") as db:
            cursor = await db.execute(INSERT_EVENT, (timestamp, level, session))
            event_id = cursor.lastrowid
            assert event_id is not None
            stored: dict[str, Any] = {}
            for name, value in attributes.items():
                params = attribute_params(event_id, name, value, registry)
                await db.execute(INSERT_ATTRIBUTE, params)
                stored[name] = stored_value(params)
        logger.debug("Wrote event %d with %d attributes", event_id, len(attributes))
        return Event(
            id=event_id,
            timestamp=timestamp,
            level=level,
            session=session,
            attributes=stored,
        )

    async def write_json(self, payload: bytes | str) -> Event:
        """Decode a JSON object payload and persist it with ``write``."""
        return await self.write(decode_payload(payload))

    async def query(self, filter: QueryFilter | None = None) -> list[Event]:
        """Return the events matching ``filter``, ordered by id ascending."""
        filter = filter or QueryFilter()
        registry = await self._loaded_registry()
        sql, params = build_event_select(filter, registry)
        async with self._db.transaction("query") as db:
            async with db.execute(sql, params) as cursor:
                headers = list(await cursor.fetchall())
            rows: list[Any] = []
            event_ids = [header[0] for header in headers]
            for attr_sql, attr_params in build_attribute_selects(
                filter, registry, event_ids
            ):
                async with db.execute(attr_sql, attr_params) as cursor:
                    rows.extend(await cursor.fetchall())
        return assemble_events(headers, rows, registry)

    async def count(self, filter: QueryFilter | None = None) -> int:
        """Return the number of events matching ``filter``."""
        registry = await self._loaded_registry()
        sql, params = build_event_select(
            filter or QueryFilter(), registry, columns="COUNT(*)", ordered=False
        )
        async with self._db.transaction("count") as db:
            async with db.execute(sql, params) as cursor:
                row = await cursor.fetchone()
        return row[0] if row else 0

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        await self._db.close()
        self._registry = None
