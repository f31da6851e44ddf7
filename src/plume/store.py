"""Record stores backing a service."""

from __future__ import annotations

from typing import Any, Protocol

from .errors import NotFound

__all__ = ["Record", "RecordStore", "MemoryStore", "coerce_id"]

Record = dict[str, Any]


class RecordStore(Protocol):
    """Minimal protocol for a store usable by :class:`~plume.service.Service`."""

    async def find(self, query: dict[str, Any] | None = None) -> Any:  # pragma: no cover - interface
        ...

    async def get(self, id: Any) -> Record:  # pragma: no cover - interface
        ...

    async def create(self, data: Record) -> Record:  # pragma: no cover - interface
        ...

    async def update(self, id: Any, data: Record) -> Record:  # pragma: no cover - interface
        ...

    async def patch(self, id: Any, data: Record) -> Record:  # pragma: no cover - interface
        ...

    async def remove(self, id: Any) -> Record:  # pragma: no cover - interface
        ...


MAX_ID = 2**63 - 1


def coerce_id(id: Any) -> int | None:
    """Parse ``id`` as an integer, returning ``None`` when it is not one.

    Values outside the signed 64-bit range SQL databases store are treated
    as unparsable too.
    """
    if isinstance(id, bool):
        return None
    if isinstance(id, int):
        key = id
    else:
        try:
            key = int(str(id).strip())
        except ValueError:
            return None
    if not -MAX_ID - 1 <= key <= MAX_ID:
        return None
    return key


class MemoryStore:
    """Keep records in a list, looked up by linear scan.

    Not safe for concurrent mutation: callers sharing a store across tasks
    must serialize access themselves.
    """

    def __init__(self) -> None:
        self.records: list[Record] = []
        self.current_id = 0

    async def find(self, query: dict[str, Any] | None = None) -> list[Record]:
        """Return every record in insertion order. ``query`` is ignored."""
        return [dict(record) for record in self.records]

    def _lookup(self, id: Any) -> Record:
        key = coerce_id(id)
        for record in self.records:
            if record["id"] == key:
                return record
        raise NotFound(f"Message with id {id} not found")

    async def get(self, id: Any) -> Record:
        return dict(self._lookup(id))

    async def create(self, data: Record) -> Record:
        self.current_id += 1
        record = {"id": self.current_id}
        record.update({k: v for k, v in data.items() if k != "id"})
        self.records.append(record)
        return dict(record)

    async def update(self, id: Any, data: Record) -> Record:
        """Replace every field of the record except ``id``."""
        record = self._lookup(id)
        key = record["id"]
        record.clear()
        record["id"] = key
        record.update({k: v for k, v in data.items() if k != "id"})
        return dict(record)

    async def patch(self, id: Any, data: Record) -> Record:
        """Merge ``data`` into the record; fields not supplied keep their value."""
        record = self._lookup(id)
        record.update({k: v for k, v in data.items() if k != "id"})
        return dict(record)

    async def remove(self, id: Any) -> Record:
        record = self._lookup(id)
        self.records.remove(record)
        return dict(record)
