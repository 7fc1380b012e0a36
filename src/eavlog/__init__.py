"""eavlog - structured log events stored as entity-attribute-value rows."""

from eavlog.adapters.logging import EventSinkHandler, configure_logging
from eavlog.adapters.storage import AsyncSQLiteEventStore, SQLiteEventStore
from eavlog.core.config import SinkConfig
from eavlog.core.errors import (
    ConfigError,
    ConflictError,
    DecodeValueError,
    DecodingError,
    EavlogError,
    EncodeValueError,
    MissingDatabaseError,
    SchemaConflictError,
    TransactionError,
)
from eavlog.core.models import AttributeName, Event, QueryFilter, StorageKind
from eavlog.core.ports import EventStoragePort
from eavlog.core.registry import NameRegistry

__all__ = [
    "AsyncSQLiteEventStore",
    "AttributeName",
    "ConfigError",
    "ConflictError",
    "DecodeValueError",
    "DecodingError",
    "EavlogError",
    "EncodeValueError",
    "Event",
    "EventSinkHandler",
    "EventStoragePort",
    "MissingDatabaseError",
    "NameRegistry",
    "QueryFilter",
    "SQLiteEventStore",
    "SchemaConflictError",
    "SinkConfig",
    "StorageKind",
    "TransactionError",
    "configure_logging",
]
