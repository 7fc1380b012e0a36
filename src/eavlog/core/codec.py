"""Value classification and column packing for attribute rows.

Every attribute value maps to exactly one ``StorageKind``, which decides the
column it is stored in:

    REAL  -> real_value   (all numbers, stored as float)
    TEXT  -> text_value   (str)
    BLOB  -> blob_value   (raw bytes)
    JSON  -> blob_value   (everything else, serialized as UTF-8 JSON)

Booleans and None are JSON, not REAL: ``bool`` is an ``int`` subclass in
Python but must read back as ``True``/``False``.
"""

import json
import math
from dataclasses import dataclass
from typing import Any

from eavlog.core.errors import DecodeValueError, EncodeValueError
from eavlog.core.models import StorageKind

_COLUMNS = {
    StorageKind.REAL: "real_value",
    StorageKind.TEXT: "text_value",
    StorageKind.BLOB: "blob_value",
    StorageKind.JSON: "blob_value",
}


@dataclass(frozen=True)
class EncodedValue:
    """A value packed into the typed columns of an attribute row."""

    kind: StorageKind
    real_value: float | None = None
    text_value: str | None = None
    blob_value: bytes | None = None

    @property
    def payload(self) -> float | str | bytes:
        """The single non-null column value."""
        if self.kind is StorageKind.REAL:
            assert self.real_value is not None
            return self.real_value
        if self.kind is StorageKind.TEXT:
            assert self.text_value is not None
            return self.text_value
        assert self.blob_value is not None
        return self.blob_value


def classify(value: Any) -> StorageKind:
    """Return the storage kind for ``value``."""
    if isinstance(value, bool):
        return StorageKind.JSON
    if isinstance(value, (int, float)):
        return StorageKind.REAL
    if isinstance(value, str):
        return StorageKind.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return StorageKind.BLOB
    return StorageKind.JSON


def column_for(kind: StorageKind) -> str:
    """Return the attribute column holding values of ``kind``."""
    return _COLUMNS[kind]


def encode(value: Any, name: str | None = None) -> EncodedValue:
    """Pack ``value`` into its typed column.

    Args:
        value: The attribute value.
        name: Attribute name, only used in error messages.

    Raises:
        EncodeValueError: The value cannot be stored faithfully.
    """
    kind = classify(value)
    if kind is StorageKind.REAL:
        try:
            real = float(value)
        except OverflowError as exc:
            raise EncodeValueError(name, str(exc)) from exc
        if math.isnan(real):
            raise EncodeValueError(name, "NaN cannot be stored as a real value")
        return EncodedValue(kind, real_value=real)
    if kind is StorageKind.TEXT:
        return EncodedValue(kind, text_value=value)
    if kind is StorageKind.BLOB:
        return EncodedValue(kind, blob_value=bytes(value))
    return EncodedValue(kind, blob_value=_dump_json(value, name))


def decode(
    kind: int,
    real_value: float | None,
    text_value: str | None,
    blob_value: bytes | None,
) -> Any:
    """Rebuild a value from the typed columns of an attribute row.

    Raises:
        DecodeValueError: The column expected for ``kind`` is NULL, the JSON
            payload is unreadable, or ``kind`` is not a known code.
    """
    try:
        storage_kind = StorageKind(kind)
    except ValueError:
        raise DecodeValueError(kind, "unknown storage kind") from None

    if storage_kind is StorageKind.REAL:
        if real_value is None:
            raise DecodeValueError(storage_kind.label, "real_value is NULL")
        return float(real_value)
    if storage_kind is StorageKind.TEXT:
        if text_value is None:
            raise DecodeValueError(storage_kind.label, "text_value is NULL")
        return text_value
    if blob_value is None:
        raise DecodeValueError(storage_kind.label, "blob_value is NULL")
    if storage_kind is StorageKind.BLOB:
        return bytes(blob_value)
    try:
        return json.loads(blob_value)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeValueError(storage_kind.label, str(exc)) from exc


def _dump_json(value: Any, name: str | None) -> bytes:
    try:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise EncodeValueError(name, str(exc)) from exc
    return text.encode("utf-8")
