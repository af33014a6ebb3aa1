"""In-memory store: same contract as JSONFileStore, nothing written to disk.

Useful for dry runs (``store: memory`` in .doclens.yml) and for exercising the
workflow in tests without touching the filesystem.
"""

from __future__ import annotations

import os
from dataclasses import replace

from doclens_store.base import BaseStore
from doclens_store.models import Database, utc_now


class MemoryStore(BaseStore):
    """Keeps the content database in process memory only.

    ``load()`` keeps whatever is already held, so an explicitly seeded
    database survives re-initialization.
    """

    def __init__(self, data: Database | None = None):
        super().__init__()
        if data is not None:
            entries = {}
            for key, entry in data.entries.items():
                absolute = os.path.abspath(key)
                entries[absolute] = replace(entry, identifier=absolute)
            self._data = Database(
                last_updated=data.last_updated,
                entries=entries,
                extra=dict(data.extra),
            )
        self.save_count = 0

    async def load(self) -> Database:
        return self._data

    async def save(self) -> None:
        self._data.last_updated = utc_now()
        self.save_count += 1
