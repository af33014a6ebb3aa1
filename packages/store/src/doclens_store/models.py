"""Content-state data models.

Decoupled from doclens_core so the store layer can be used independently:
it knows about entries, scores and cost ledgers, but nothing about how
scores are produced or where document text lives.

Every model round-trips through ``to_dict()`` / ``from_dict()`` using the
camelCase field names of the on-disk database document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

DIMENSIONS = ("readability", "seoScore", "technicalAccuracy", "engagement", "contentDepth")

DEFAULT_TARGET_SCORES: dict[str, float] = {
    "readability": 8.0,
    "seoScore": 8.5,
    "technicalAccuracy": 9.0,
    "engagement": 8.0,
    "contentDepth": 8.5,
}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def zero_scores() -> dict[str, float]:
    return {dim: 0.0 for dim in DIMENSIONS}


class Status(str, Enum):
    """Lifecycle stage of a tracked document."""

    NEEDS_REVIEW = "needs_review"
    NEEDS_IMPROVEMENT = "needs_improvement"
    MEETS_TARGETS = "meets_targets"


class OperationKind(str, Enum):
    """Paid operation buckets in the cost ledger."""

    REVIEW = "review"
    IMPROVE = "improve"
    GENERATE = "generate"


@dataclass
class CostInfo:
    """Inference spend reported by a Quality Assessor for one call."""

    provider: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0
    timestamp: str = field(default_factory=utc_now)


@dataclass
class OperationCost:
    """One paid call, appended to an entry's operation history."""

    operation: str  # "review" | "improve" | "generate"
    cost: float
    provider: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "cost": self.cost,
            "provider": self.provider,
            "model": self.model,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict) -> OperationCost:
        return cls(
            operation=d.get("operation", OperationKind.REVIEW.value),
            cost=float(d.get("cost", 0.0)),
            provider=d.get("provider", "unknown"),
            model=d.get("model", "unknown"),
            input_tokens=int(d.get("inputTokens", 0)),
            output_tokens=int(d.get("outputTokens", 0)),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class ImprovementMetrics:
    """Quality return on an improve operation, attached to its history record."""

    score_before: float
    score_after: float
    quality_delta: float
    cost_per_quality_point: float
    iteration_number: int

    def to_dict(self) -> dict:
        return {
            "scoreBefore": self.score_before,
            "scoreAfter": self.score_after,
            "qualityDelta": self.quality_delta,
            "costPerQualityPoint": self.cost_per_quality_point,
            "iterationNumber": self.iteration_number,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ImprovementMetrics:
        return cls(
            score_before=float(d.get("scoreBefore", 0.0)),
            score_after=float(d.get("scoreAfter", 0.0)),
            quality_delta=float(d.get("qualityDelta", 0.0)),
            cost_per_quality_point=float(d.get("costPerQualityPoint", 0.0)),
            iteration_number=int(d.get("iterationNumber", 0)),
        )


@dataclass
class ReviewRecord:
    """A single append-only entry in an entry's review history."""

    timestamp: str
    scores: dict[str, float]
    improvements: list[str] = field(default_factory=list)
    improvement_metrics: ImprovementMetrics | None = None
    cost_info: OperationCost | None = None

    def to_dict(self) -> dict:
        d: dict = {
            "timestamp": self.timestamp,
            "scores": dict(self.scores),
            "improvements": list(self.improvements),
        }
        if self.improvement_metrics is not None:
            d["improvementMetrics"] = self.improvement_metrics.to_dict()
        if self.cost_info is not None:
            d["costInfo"] = self.cost_info.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> ReviewRecord:
        metrics = d.get("improvementMetrics")
        cost_info = d.get("costInfo")
        return cls(
            # Older databases stamped history records with "date".
            timestamp=d.get("timestamp") or d.get("date", ""),
            scores={k: float(v) for k, v in (d.get("scores") or {}).items()},
            improvements=list(d.get("improvements") or []),
            improvement_metrics=ImprovementMetrics.from_dict(metrics) if metrics else None,
            cost_info=OperationCost.from_dict(cost_info) if cost_info else None,
        )


@dataclass
class CostAccounting:
    """Running cost totals for one entry."""

    review_costs: float = 0.0
    improvement_costs: float = 0.0
    generation_costs: float = 0.0
    total_cost: float = 0.0
    operation_history: list[OperationCost] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "reviewCosts": self.review_costs,
            "improvementCosts": self.improvement_costs,
            "generationCosts": self.generation_costs,
            "totalCost": self.total_cost,
            "operationHistory": [op.to_dict() for op in self.operation_history],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CostAccounting:
        return cls(
            review_costs=float(d.get("reviewCosts", 0.0)),
            improvement_costs=float(d.get("improvementCosts", 0.0)),
            generation_costs=float(d.get("generationCosts", 0.0)),
            total_cost=float(d.get("totalCost", 0.0)),
            operation_history=[OperationCost.from_dict(op) for op in d.get("operationHistory", [])],
            last_updated=d.get("lastUpdated", ""),
        )


@dataclass
class Entry:
    """The persisted record of one tracked document.

    ``identifier`` is an absolute path while in memory; the store rewrites it
    relative to the database file on save and back on load.
    """

    identifier: str
    current_scores: dict[str, float] = field(default_factory=zero_scores)
    target_scores: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TARGET_SCORES))
    status: Status = Status.NEEDS_REVIEW
    improvement_iterations: int = 0
    review_history: list[ReviewRecord] = field(default_factory=list)
    last_review_date: str = field(default_factory=utc_now)
    cost_accounting: CostAccounting | None = None

    def average_score(self) -> float:
        if not self.current_scores:
            return 0.0
        return sum(self.current_scores.values()) / len(self.current_scores)

    def to_dict(self) -> dict:
        d: dict = {
            "identifier": self.identifier,
            "currentScores": dict(self.current_scores),
            "targetScores": dict(self.target_scores),
            "status": self.status.value,
            "improvementIterations": self.improvement_iterations,
            "reviewHistory": [r.to_dict() for r in self.review_history],
            "lastReviewDate": self.last_review_date,
        }
        if self.cost_accounting is not None:
            d["costAccounting"] = self.cost_accounting.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Entry:
        accounting = d.get("costAccounting")
        return cls(
            # Older databases keyed the document path as "path".
            identifier=d.get("identifier") or d.get("path", ""),
            current_scores={k: float(v) for k, v in (d.get("currentScores") or {}).items()},
            target_scores={k: float(v) for k, v in (d.get("targetScores") or DEFAULT_TARGET_SCORES).items()},
            status=Status(d.get("status", Status.NEEDS_REVIEW.value)),
            improvement_iterations=int(d.get("improvementIterations", 0)),
            review_history=[ReviewRecord.from_dict(r) for r in d.get("reviewHistory", [])],
            last_review_date=d.get("lastReviewDate", ""),
            cost_accounting=CostAccounting.from_dict(accounting) if accounting else None,
        )


@dataclass
class Database:
    """The whole content database.

    ``extra`` holds top-level keys the store does not own (for example a
    ``workflowConfig`` block written by other tools) so they survive a
    load/save cycle untouched.
    """

    last_updated: str = field(default_factory=utc_now)
    entries: dict[str, Entry] = field(default_factory=dict)
    extra: dict = field(default_factory=dict)
