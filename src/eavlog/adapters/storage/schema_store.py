"""Table layout and attribute registry persistence."""

import logging
import sqlite3
from collections.abc import Iterable

import aiosqlite

from eavlog.core.errors import ConflictError, SchemaConflictError
from eavlog.core.models import StorageKind
from eavlog.core.registry import NameRegistry

logger = logging.getLogger(__name__)


def _storage_kind_rows() -> str:
    values = ", ".join(f"('{kind.label}', {kind.value})" for kind in StorageKind)
    return (
        f"INSERT INTO storage_kinds (kind, code) VALUES {values} "
        "ON CONFLICT (kind) DO NOTHING;"
    )


EVENTS_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date REAL NOT NULL,
    level TEXT NOT NULL,
    session TEXT
);
CREATE INDEX IF NOT EXISTS idx_events_date ON events(date);
CREATE INDEX IF NOT EXISTS idx_events_level ON events(level);

CREATE TABLE IF NOT EXISTS attribute_registry (
    id INTEGER PRIMARY KEY NOT NULL,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS event_attributes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id INTEGER NOT NULL REFERENCES events(id),
    storage_kind INTEGER NOT NULL,
    name TEXT,
    name_id INTEGER REFERENCES attribute_registry(id),
    real_value REAL,
    text_value TEXT,
    blob_value BLOB
);
CREATE INDEX IF NOT EXISTS idx_event_attributes_event_id ON event_attributes(event_id);
CREATE INDEX IF NOT EXISTS idx_event_attributes_storage_kind
    ON event_attributes(storage_kind);
CREATE INDEX IF NOT EXISTS idx_event_attributes_name ON event_attributes(name);

CREATE TABLE IF NOT EXISTS storage_kinds (
    kind TEXT PRIMARY KEY,
    code INTEGER NOT NULL
);
{_storage_kind_rows()}
"""

_SELECT_REGISTRY = """
SELECT id, name FROM attribute_registry ORDER BY id ASC
"""

# Blind overwrite: a concurrent writer's entries for the same id or name are
# replaced, not merged.
_UPSERT_REGISTRY = """
INSERT OR REPLACE INTO attribute_registry (id, name) VALUES (?, ?)
"""


def load_registry(rows: Iterable[tuple[int, str]]) -> NameRegistry:
    """Rebuild a registry from persisted ``(id, name)`` rows, in order.

    Raises:
        SchemaConflictError: Two rows disagree about an id or a name.
    """
    registry = NameRegistry()
    for id, name in rows:
        try:
            registry.intern_with_id(name, id)
        except ConflictError as exc:
            raise SchemaConflictError(exc) from exc
    return registry


def registry_rows(registry: NameRegistry) -> list[tuple[int, str]]:
    return [(entry.id, entry.name) for entry in registry]


class SchemaStore:
    """Persists the attribute registry through a sqlite3 connection."""

    def load(self, conn: sqlite3.Connection) -> NameRegistry:
        registry = load_registry(conn.execute(_SELECT_REGISTRY))
        logger.debug("Loaded %d attribute names", len(registry))
        return registry

    def save(self, conn: sqlite3.Connection, registry: NameRegistry) -> None:
        """Upsert every registry entry. Does not commit."""
        rows = registry_rows(registry)
        if rows:
            conn.executemany(_UPSERT_REGISTRY, rows)
        logger.debug("Saved %d attribute names", len(rows))


class AsyncSchemaStore:
    """Persists the attribute registry through an aiosqlite connection."""

    async def load(self, db: aiosqlite.Connection) -> NameRegistry:
        async with db.execute(_SELECT_REGISTRY) as cursor:
            rows = await cursor.fetchall()
        registry = load_registry((row[0], row[1]) for row in rows)
        logger.debug("Loaded %d attribute names", len(registry))
        return registry

    async def save(self, db: aiosqlite.Connection, registry: NameRegistry) -> None:
        """Upsert every registry entry. Does not commit."""
        rows = registry_rows(registry)
        if rows:
            await db.executemany(_UPSERT_REGISTRY, rows)
        logger.debug("Saved %d attribute names", len(rows))
