"""Abstract content source.

The workflow only needs three things from wherever documents live: the set
of identifiers, the text behind one identifier, and a way to replace that
text. Identifiers are absolute paths for filesystem-backed sources.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ContentSource(ABC):
    @abstractmethod
    async def list(self) -> list[str]:
        """Return every document identifier currently available."""

    @abstractmethod
    async def read(self, identifier: str) -> str:
        """Return the document's text. Raises if it cannot be read."""

    @abstractmethod
    async def write(self, identifier: str, text: str) -> None:
        """Replace the document's text."""
