"""Attribute name interning registry."""

from collections.abc import Iterator

from eavlog.core.errors import ConflictError
from eavlog.core.models import AttributeName


class NameRegistry:
    """Bidirectional mapping between attribute names and integer ids.

    Entries live in an append-only list; ``_by_name`` and ``_by_id`` index
    into it and are always updated together. Ids are handed out from a
    high-water mark that only ever advances, so an id is never reused even
    when explicit ids leave gaps.

    Not safe for concurrent mutation; each store owns its own registry.
    """

    def __init__(self) -> None:
        self._entries: list[AttributeName] = []
        self._by_name: dict[str, int] = {}
        self._by_id: dict[int, int] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[AttributeName]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"NameRegistry(entries={len(self._entries)}, next_id={self._next_id})"

    @property
    def next_id(self) -> int:
        """The id the next call to ``intern`` would assign."""
        return self._next_id

    def lookup(self, name: str) -> AttributeName | None:
        """Return the entry for ``name``, or None if it is not interned."""
        slot = self._by_name.get(name)
        return None if slot is None else self._entries[slot]

    def lookup_by_id(self, id: int) -> AttributeName | None:
        """Return the entry bound to ``id``, or None."""
        slot = self._by_id.get(id)
        return None if slot is None else self._entries[slot]

    def intern(self, name: str) -> AttributeName:
        """Return the entry for ``name``, registering it if needed.

        New names get the current high-water mark as id. Never fails.
        """
        existing = self.lookup(name)
        if existing is not None:
            return existing
        return self._append(name, self._next_id)

    def intern_with_id(self, name: str, id: int) -> AttributeName:
        """Register ``name`` under an explicit ``id``.

        Used when reloading persisted state. Registering an exact pair twice
        is a no-op.

        Raises:
            ConflictError: ``id`` is bound to another name, or ``name`` is
                bound to another id. The registry is left unchanged.
        """
        by_id = self.lookup_by_id(id)
        if by_id is not None and by_id.name != name:
            raise ConflictError(name, id, by_id)
        by_name = self.lookup(name)
        if by_name is not None:
            if by_name.id != id:
                raise ConflictError(name, id, by_name)
            return by_name
        return self._append(name, id)

    def _append(self, name: str, id: int) -> AttributeName:
        entry = AttributeName(name=name, id=id)
        slot = len(self._entries)
        self._entries.append(entry)
        self._by_name[name] = slot
        self._by_id[id] = slot
        self._next_id = max(self._next_id, id + 1)
        return entry
