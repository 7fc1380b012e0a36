"""Structured error types for eavlog."""

from typing import Any


class EavlogError(Exception):
    """Base error for all eavlog errors."""


class DecodingError(EavlogError):
    """Raised when an input event payload is malformed.

    Always raised before any store interaction.
    """


class EncodeValueError(EavlogError):
    """Raised when an attribute value cannot be encoded for storage."""

    def __init__(self, name: str | None, detail: str) -> None:
        self.name = name
        self.detail = detail
        if name is None:
            super().__init__(f"Cannot encode value: {detail}")
        else:
            super().__init__(f"Cannot encode attribute '{name}': {detail}")


class ConflictError(EavlogError):
    """Raised when strict interning collides with an existing registry entry."""

    def __init__(self, name: str, id: int, existing: Any) -> None:
        self.name = name
        self.id = id
        self.existing = existing
        super().__init__(
            f"Cannot register '{name}' with id {id}: "
            f"conflicts with '{existing.name}' with id {existing.id}"
        )


class SchemaConflictError(EavlogError):
    """Raised when the persisted attribute registry is internally inconsistent."""

    def __init__(self, conflict: ConflictError) -> None:
        self.conflict = conflict
        super().__init__(f"Persisted attribute registry is corrupt: {conflict}")


class TransactionError(EavlogError):
    """Raised when the backing store fails during a transaction or query."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store error during {operation}: {detail}")


class DecodeValueError(EavlogError):
    """Raised when a stored attribute row cannot be decoded."""

    def __init__(self, kind: Any, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"Cannot decode {kind} attribute: {detail}")


class ConfigError(EavlogError):
    """Raised for invalid sink configuration."""


class MissingDatabaseError(ConfigError):
    """Raised when no database path is configured."""

    def __init__(self) -> None:
        super().__init__("missing database path")
