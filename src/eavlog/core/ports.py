"""Port interfaces for event storage adapters.

These protocols define the contracts that storage adapters must implement.
The logging front-end depends only on these interfaces, not concrete
implementations.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from eavlog.core.models import Event, QueryFilter


@runtime_checkable
class EventStoragePort(Protocol):
    """Port for event storage operations.

    Examples: SQLiteEventStore.
    """

    def write(self, event: Mapping[str, Any]) -> Event:
        """Persist one decoded event mapping atomically.

        The mapping must carry a ``level`` and may carry a ``session``; every
        other field is stored as an attribute.
        """
        ...

    def query(self, filter: QueryFilter | None = None) -> list[Event]:
        """Return the events matching ``filter``, ordered by id ascending."""
        ...
