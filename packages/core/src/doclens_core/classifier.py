"""Status classification from quality scores."""

from __future__ import annotations

from doclens_store.models import Status

MEETS_TARGETS_THRESHOLD = 8.5
NEEDS_IMPROVEMENT_THRESHOLD = 7.0


def average_score(scores: dict[str, float]) -> float:
    if not scores:
        raise ValueError("Cannot average an empty score mapping")
    return sum(scores.values()) / len(scores)


def classify(scores: dict[str, float]) -> Status:
    """Map a non-empty score mapping to a lifecycle status by its mean."""
    avg = average_score(scores)
    if avg >= MEETS_TARGETS_THRESHOLD:
        return Status.MEETS_TARGETS
    if avg >= NEEDS_IMPROVEMENT_THRESHOLD:
        return Status.NEEDS_IMPROVEMENT
    return Status.NEEDS_REVIEW
