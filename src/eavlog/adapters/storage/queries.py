"""SQL construction and event reconstruction shared by the event stores.

Reading is done in two phases. The header select filters ``events`` on its
own columns and, for value filters, on ``EXISTS`` sub-selects against
``event_attributes``. The attribute select then fetches the attribute rows of
the matching events, joined to ``attribute_registry`` so that interned names
can be resolved.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from eavlog.core.codec import column_for, decode, encode
from eavlog.core.errors import DecodingError
from eavlog.core.models import Event, QueryFilter
from eavlog.core.registry import NameRegistry

logger = logging.getLogger(__name__)

LEVEL_FIELD = "level"
SESSION_FIELD = "session"

# Stays well below SQLITE_MAX_VARIABLE_NUMBER on every SQLite build.
ID_BATCH_SIZE = 500

INSERT_EVENT = """
INSERT INTO events (date, level, session) VALUES (?, ?, ?)
"""

INSERT_ATTRIBUTE = """
INSERT INTO event_attributes
    (event_id, storage_kind, name, name_id, real_value, text_value, blob_value)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_ATTRIBUTES = """
SELECT a.event_id, a.storage_kind, a.name, a.name_id, r.name,
       a.real_value, a.text_value, a.blob_value
FROM event_attributes a
LEFT JOIN attribute_registry r ON r.id = a.name_id
"""

HeaderRow = Sequence[Any]
AttributeRow = Sequence[Any]


def split_event(
    event: Mapping[str, Any],
) -> tuple[str, str | None, dict[str, Any]]:
    """Separate the header fields of an event mapping from its attributes.

    Returns:
        ``(level, session, attributes)``.

    Raises:
        DecodingError: ``level`` is missing or not a string, or ``session``
            is neither a string nor None.
    """
    if not isinstance(event, Mapping):
        raise DecodingError(f"event must be a mapping, got {type(event).__name__}")
    level = event.get(LEVEL_FIELD)
    if not isinstance(level, str):
        raise DecodingError("event is missing a string 'level' field")
    session = event.get(SESSION_FIELD)
    if session is not None and not isinstance(session, str):
        raise DecodingError("event 'session' field must be a string")
    attributes = {
        str(name): value
        for name, value in event.items()
        if name not in (LEVEL_FIELD, SESSION_FIELD)
    }
    return level, session, attributes


def attribute_params(
    event_id: int, name: str, value: Any, registry: NameRegistry
) -> tuple[Any, ...]:
    """Build the INSERT_ATTRIBUTE parameters for one field.

    Interned names are stored by id with ``name`` left NULL; all others are
    stored literally.
    """
    encoded = encode(value, name)
    entry = registry.lookup(name)
    return (
        event_id,
        int(encoded.kind),
        None if entry is not None else name,
        entry.id if entry is not None else None,
        encoded.real_value,
        encoded.text_value,
        encoded.blob_value,
    )


def stored_value(params: Sequence[Any]) -> Any:
    """Return the value a query reads back for INSERT_ATTRIBUTE ``params``."""
    return decode(params[1], params[4], params[5], params[6])


def _name_predicate(name: str, registry: NameRegistry) -> tuple[str, list[Any]]:
    # Rows written before a name was interned still carry it literally.
    entry = registry.lookup(name)
    if entry is None:
        return "a.name = ?", [name]
    return "(a.name_id = ? OR a.name = ?)", [entry.id, name]


def build_event_select(
    filter: QueryFilter,
    registry: NameRegistry,
    columns: str = "id, date, level, session",
    ordered: bool = True,
) -> tuple[str, list[Any]]:
    """Build the header-level select for ``filter``.

    Raises:
        EncodeValueError: A value filter holds a value that cannot be encoded.
    """
    clauses: list[str] = []
    params: list[Any] = []

    if filter.level is not None:
        clauses.append("level = ?")
        params.append(filter.level)
    if filter.session is not None:
        clauses.append("session = ?")
        params.append(filter.session)
    if filter.since is not None:
        clauses.append("date >= ?")
        params.append(filter.since)
    if filter.until is not None:
        clauses.append("date <= ?")
        params.append(filter.until)

    for name, expected in filter.value_filters.items():
        encoded = encode(expected, name)
        name_sql, name_params = _name_predicate(name, registry)
        clauses.append(
            "EXISTS (SELECT 1 FROM event_attributes a "
            f"WHERE a.event_id = events.id AND {name_sql} "
            f"AND a.storage_kind = ? AND a.{column_for(encoded.kind)} = ?)"
        )
        params.extend(name_params)
        params.extend([int(encoded.kind), encoded.payload])

    sql = f"SELECT {columns} FROM events"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    if ordered:
        sql += " ORDER BY id ASC"
    return sql, params


def build_attribute_selects(
    filter: QueryFilter, registry: NameRegistry, event_ids: Sequence[int]
) -> list[tuple[str, list[Any]]]:
    """Build the attribute selects for ``event_ids``, one per id batch."""
    name_sql = ""
    name_params: list[Any] = []
    if filter.selected_names:
        names = sorted(filter.selected_names)
        ids = [entry.id for entry in map(registry.lookup, names) if entry is not None]
        parts = [f"a.name IN ({_placeholders(names)})"]
        name_params.extend(names)
        if ids:
            parts.append(f"a.name_id IN ({_placeholders(ids)})")
            name_params.extend(ids)
        name_sql = " AND (" + " OR ".join(parts) + ")"

    statements = []
    for start in range(0, len(event_ids), ID_BATCH_SIZE):
        batch = list(event_ids[start : start + ID_BATCH_SIZE])
        sql = (
            _SELECT_ATTRIBUTES
            + f"WHERE a.event_id IN ({_placeholders(batch)})"
            + name_sql
            + " ORDER BY a.event_id ASC, a.id ASC"
        )
        statements.append((sql, batch + name_params))
    return statements


def assemble_events(
    headers: Iterable[HeaderRow],
    attributes: Iterable[AttributeRow],
    registry: NameRegistry,
) -> list[Event]:
    """Group attribute rows under their event and decode them.

    Rows whose name cannot be resolved are dropped.

    Raises:
        DecodeValueError: An attribute row cannot be decoded.
    """
    header_by_id: dict[int, HeaderRow] = {}
    values_by_id: dict[int, dict[str, Any]] = {}
    for header in headers:
        header_by_id[header[0]] = header
        values_by_id[header[0]] = {}

    for row in attributes:
        event_id, kind, name, name_id, registered_name = row[:5]
        values = values_by_id.get(event_id)
        if values is None:
            continue
        value = decode(kind, row[5], row[6], row[7])
        resolved = _resolve_name(name, name_id, registered_name, registry)
        if resolved is None:
            logger.debug(
                "Dropping attribute of event %d with unknown name id %s",
                event_id,
                name_id,
            )
            continue
        values[resolved] = value

    return [
        Event(
            id=event_id,
            timestamp=header_by_id[event_id][1],
            level=header_by_id[event_id][2],
            session=header_by_id[event_id][3],
            attributes=values_by_id[event_id],
        )
        for event_id in sorted(header_by_id)
    ]


def _resolve_name(
    name: str | None,
    name_id: int | None,
    registered_name: str | None,
    registry: NameRegistry,
) -> str | None:
    if name is not None:
        return name
    if registered_name is not None:
        return registered_name
    if name_id is not None:
        entry = registry.lookup_by_id(name_id)
        if entry is not None:
            return entry.name
    return None


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)
