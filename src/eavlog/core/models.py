"""Core domain models for structured log events."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import IntEnum
from types import MappingProxyType
from typing import Any


class StorageKind(IntEnum):
    """Physical encoding of an attribute value.

    The numeric codes are persisted in ``event_attributes.storage_kind`` and
    must never change.
    """

    REAL = 0
    TEXT = 1
    BLOB = 2
    JSON = 3

    @property
    def label(self) -> str:
        """Lowercase symbolic name, as stored in the ``storage_kinds`` table."""
        return self.name.lower()


@dataclass(frozen=True)
class AttributeName:
    """An interned attribute name.

    Attributes:
        name: The attribute name as written by the application.
        id: Stable integer handle stored in place of the name.
    """

    name: str
    id: int


@dataclass(frozen=True)
class Event:
    """A persisted log event.

    Attributes:
        id: Identifier assigned by the store.
        timestamp: Unix timestamp in seconds (UTC) at write time.
        level: Log level (e.g., INFO, ERROR, DEBUG).
        session: Optional session identifier.
        attributes: All remaining fields, with their original values.
    """

    id: int
    timestamp: float
    level: str
    session: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


Timestamp = float | int | datetime


def to_unix_seconds(value: Timestamp) -> float:
    """Normalize a timestamp to unix seconds.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


@dataclass(frozen=True)
class QueryFilter:
    """Criteria for selecting events.

    Every populated field narrows the result (AND semantics); omitted fields
    impose no constraint.

    Attributes:
        level: Exact level to match.
        session: Exact session to match.
        since: Inclusive lower bound on the event timestamp (unix seconds).
        until: Inclusive upper bound on the event timestamp (unix seconds).
        selected_names: If non-empty, only these attributes are returned.
        value_filters: Attribute name/value pairs every event must carry.
    """

    level: str | None = None
    session: str | None = None
    since: Timestamp | None = None
    until: Timestamp | None = None
    selected_names: frozenset[str] = frozenset()
    value_filters: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if self.since is not None:
            object.__setattr__(self, "since", to_unix_seconds(self.since))
        if self.until is not None:
            object.__setattr__(self, "until", to_unix_seconds(self.until))
        if not isinstance(self.selected_names, frozenset):
            object.__setattr__(self, "selected_names", frozenset(self.selected_names))
        if not isinstance(self.value_filters, MappingProxyType):
            object.__setattr__(
                self, "value_filters", MappingProxyType(dict(self.value_filters))
            )

    def with_level(self, level: str) -> "QueryFilter":
        return replace(self, level=level)

    def with_session(self, session: str) -> "QueryFilter":
        return replace(self, session=session)

    def with_since(self, since: Timestamp) -> "QueryFilter":
        return replace(self, since=to_unix_seconds(since))

    def with_until(self, until: Timestamp) -> "QueryFilter":
        return replace(self, until=to_unix_seconds(until))

    def with_selected_names(self, *names: str) -> "QueryFilter":
        """Return a filter also selecting ``names`` (accumulates)."""
        return replace(self, selected_names=self.selected_names | frozenset(names))

    def with_value_filters(self, filters: Mapping[str, Any]) -> "QueryFilter":
        """Return a filter with ``filters`` merged into the value filters."""
        merged = dict(self.value_filters)
        merged.update(filters)
        return replace(self, value_filters=merged)
