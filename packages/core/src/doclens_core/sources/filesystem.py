"""Filesystem content source: markdown files under one root directory."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from doclens_core.sources.base import ContentSource
from doclens_core.utils.content import DEFAULT_CONTENT_EXTENSIONS, is_content_file

logger = logging.getLogger(__name__)


class FileSystemSource(ContentSource):
    """Lists content files by suffix and reads/writes them as UTF-8 text."""

    def __init__(
        self,
        root_dir: str | os.PathLike,
        extensions: tuple[str, ...] | list[str] = DEFAULT_CONTENT_EXTENSIONS,
    ):
        self.root_dir = Path(os.path.abspath(os.fspath(root_dir)))
        self.extensions = tuple(extensions)

    async def list(self) -> list[str]:
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[str]:
        if not self.root_dir.is_dir():
            raise FileNotFoundError(
                f"Content directory not found: {self.root_dir}. "
                "Create it or set content_dir in .doclens.yml."
            )
        found = []
        for dirpath, dirnames, filenames in os.walk(self.root_dir):
            # Skip hidden directories such as .git and the database directory.
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for name in filenames:
                if is_content_file(name, self.extensions):
                    found.append(os.path.join(dirpath, name))
        logger.debug("Found %d content file(s) under %s", len(found), self.root_dir)
        return sorted(found)

    async def read(self, identifier: str) -> str:
        return await asyncio.to_thread(Path(identifier).read_text, encoding="utf-8")

    async def write(self, identifier: str, text: str) -> None:
        await asyncio.to_thread(Path(identifier).write_text, text, encoding="utf-8")
