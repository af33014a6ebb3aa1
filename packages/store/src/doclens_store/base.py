"""Abstract store interface.

Any storage backend (JSON file, in-memory) implements this interface. The
workflow depends on BaseStore, not on a concrete backend, so backends are
swappable without touching orchestration code.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

from doclens_store.models import Database

if TYPE_CHECKING:
    from doclens_store.models import Entry

UpdateFn = Callable[[Optional["Entry"]], "Entry"]


class BaseStore(ABC):
    """Authoritative in-memory content database with a persistence hook.

    ``update_entry`` is the only sanctioned mutation path. Calls are
    serialized on an asyncio lock, so overlapping coroutines inside one
    process never interleave a read-modify-write-persist cycle. Separate
    processes sharing a backend are not coordinated.
    """

    def __init__(self) -> None:
        self._data = Database()
        self._lock = asyncio.Lock()

    @abstractmethod
    async def load(self) -> Database:
        """Replace the in-memory database with the persisted one and return it."""

    @abstractmethod
    async def save(self) -> None:
        """Stamp ``last_updated`` and persist the whole database."""

    def get_data(self) -> Database:
        """Return the live database object (not a copy)."""
        return self._data

    async def update_entry(self, identifier: str, update_fn: UpdateFn) -> Entry:
        """Run ``update_fn`` on the current entry, store its result, then save.

        If ``update_fn`` raises, the map is left as it was and nothing is
        written. If ``save`` raises, the previous entry (or its absence) is
        restored before the error propagates, so the in-memory database
        matches what was last persisted. The new entry is returned for
        convenience.
        """
        async with self._lock:
            entries = self._data.entries
            existed = identifier in entries
            current = entries.get(identifier)
            last_updated = self._data.last_updated
            updated = update_fn(current)
            entries[identifier] = updated
            try:
                await self.save()
            except BaseException:
                if existed:
                    entries[identifier] = current
                else:
                    del entries[identifier]
                self._data.last_updated = last_updated
                raise
            return updated

    def close(self) -> None:
        """Release any resources held by the store.

        Optional: subclasses that need cleanup should override this. Default
        is a no-op so callers can always call close() safely.
        """
