"""Store-layer exceptions."""

from __future__ import annotations


class PersistenceError(Exception):
    """The database file could not be read, parsed, or written.

    Always raised ``from`` the underlying cause so callers see the original
    OSError / JSONDecodeError in the traceback.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
