"""Relocatable path encoding for the database file.

Entries are keyed by absolute paths in memory but written to disk relative
to the directory that holds the database file. Moving the database together
with the documents it tracks keeps every key valid; moving only one of the
two breaks the mapping.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath


class PathCodec:
    """Map absolute identifiers to and from anchor-relative ones."""

    def __init__(self, anchor_dir: str | os.PathLike):
        self.anchor_dir = os.path.abspath(os.fspath(anchor_dir))

    def to_relative(self, absolute: str) -> str:
        relative = os.path.relpath(os.path.abspath(absolute), self.anchor_dir)
        # Stored keys use forward slashes so the file is portable across OSes.
        return Path(relative).as_posix()

    def to_absolute(self, relative: str) -> str:
        if os.path.isabs(relative):
            return os.path.normpath(relative)
        parts = PurePosixPath(relative).parts
        return os.path.normpath(os.path.join(self.anchor_dir, *parts))
