"""Core domain: models, value codec, name registry and errors."""

from eavlog.core.codec import classify, decode, encode
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
from eavlog.core.registry import NameRegistry

__all__ = [
    "AttributeName",
    "ConfigError",
    "ConflictError",
    "DecodeValueError",
    "DecodingError",
    "EavlogError",
    "EncodeValueError",
    "Event",
    "MissingDatabaseError",
    "NameRegistry",
    "QueryFilter",
    "SchemaConflictError",
    "StorageKind",
    "TransactionError",
    "classify",
    "decode",
    "encode",
]
