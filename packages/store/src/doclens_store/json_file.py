"""JSONFileStore: the durable content database.

Data format: one UTF-8 JSON document,

    {
      "lastUpdated": "<ISO-8601>",
      "entries": {"<path relative to this file's directory>": {...Entry...}},
      ...any other top-level keys, preserved as-is...
    }

Why one whole-document file:
- Human-diffable: the database can be committed next to the content it
  tracks and reviewed in a pull request.
- Relocatable: keys are relative to the file's directory, so moving the
  content tree together with the database keeps it valid.
- Crash-safe: every save writes a sibling temp file and atomically replaces
  the target, so a reader never sees a half-written document.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from doclens_store.base import BaseStore
from doclens_store.errors import PersistenceError
from doclens_store.models import Database, Entry, utc_now
from doclens_store.paths import PathCodec

logger = logging.getLogger(__name__)

_OWNED_KEYS = ("lastUpdated", "entries")


class JSONFileStore(BaseStore):
    """Stores the content database as a single JSON file.

    The file path defaults to ``.doclens/content-db.json`` under the current
    working directory. Configure via .doclens.yml: ``db_path: path/to/db.json``.
    """

    def __init__(self, db_path: str | os.PathLike = ".doclens/content-db.json"):
        super().__init__()
        self.db_path = Path(os.path.abspath(os.fspath(db_path)))
        self.codec = PathCodec(self.db_path.parent)

    async def load(self) -> Database:
        """Load the database, creating and persisting an empty one if absent."""
        try:
            raw = await asyncio.to_thread(self.db_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("No content database at %s; creating an empty one", self.db_path)
            self._data = Database()
            await self.save()
            return self._data
        except OSError as e:
            raise PersistenceError(f"Could not read content database {self.db_path}: {e}", str(self.db_path)) from e

        try:
            self._data = self._decode(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(
                f"Content database {self.db_path} is corrupt ({type(e).__name__}: {e})", str(self.db_path)
            ) from e

        logger.debug("Loaded %d entries from %s", len(self._data.entries), self.db_path)
        return self._data

    async def save(self) -> None:
        self._data.last_updated = utc_now()
        document = self._encode(self._data)
        await asyncio.to_thread(self._write, document)

    def _write(self, document: dict) -> None:
        directory = self.db_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create database directory {directory}: {e}", str(self.db_path)) from e

        payload = json.dumps(document, indent=2, ensure_ascii=False)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.db_path.name}.", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.db_path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Failed to write content database {self.db_path}: {e}", str(self.db_path)) from e

    def _encode(self, data: Database) -> dict:
        entries = {}
        for identifier, entry in data.entries.items():
            relative = self.codec.to_relative(identifier)
            d = entry.to_dict()
            d["identifier"] = relative
            entries[relative] = d
        return {**data.extra, "lastUpdated": data.last_updated, "entries": entries}

    def _decode(self, document: dict) -> Database:
        entries: dict[str, Entry] = {}
        for relative, d in (document.get("entries") or {}).items():
            absolute = self.codec.to_absolute(relative)
            entry = Entry.from_dict(d)
            # The map key is authoritative; keep the entry's own field in sync.
            entry.identifier = absolute
            entries[absolute] = entry
        extra = {k: v for k, v in document.items() if k not in _OWNED_KEYS}
        return Database(
            last_updated=document.get("lastUpdated", utc_now()),
            entries=entries,
            extra=extra,
        )
