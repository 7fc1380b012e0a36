"""Storage adapters implementing core ports."""

from eavlog.adapters.storage.schema_store import (
    EVENTS_SCHEMA,
    AsyncSchemaStore,
    SchemaStore,
)
from eavlog.adapters.storage.sqlite_events import (
    AsyncSQLiteEventStore,
    SQLiteEventStore,
)

__all__ = [
    "EVENTS_SCHEMA",
    "AsyncSQLiteEventStore",
    "AsyncSchemaStore",
    "SQLiteEventStore",
    "SchemaStore",
]
