"""Error taxonomy for content workflow operations.

Single-item operations raise these to their caller. Batch operations catch
them per item and record ``{identifier, error}`` instead, except for
PersistenceError, which means the store itself may be inconsistent and
aborts the batch.
"""

from __future__ import annotations

from doclens_store.errors import PersistenceError

__all__ = [
    "DoclensError",
    "NotFoundError",
    "AlreadyReviewedError",
    "IntegrityRejectedError",
    "AssessorError",
    "PersistenceError",
]


class DoclensError(Exception):
    """Base class for item-scoped workflow failures."""


class NotFoundError(DoclensError):
    def __init__(self, identifier: str):
        super().__init__(f"Content not found: {identifier}")
        self.identifier = identifier


class AlreadyReviewedError(DoclensError):
    def __init__(self, identifier: str, status: str):
        super().__init__(f"Content has already been reviewed ({status}): {identifier}")
        self.identifier = identifier
        self.status = status


class IntegrityRejectedError(DoclensError):
    """An improved document failed validation and was not written."""

    def __init__(self, reasons: list[str]):
        super().__init__("Improved content rejected: " + "; ".join(reasons))
        self.reasons = reasons


class AssessorError(DoclensError):
    """The Quality Assessor failed or returned something unusable."""
