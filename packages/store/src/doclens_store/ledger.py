"""Per-entry cost ledger.

Pure aggregation over the models in doclens_store.models: nothing here does
I/O. ``record_operation`` is meant to be called from inside a store
``update_entry`` callback so the cost lands in the same commit as the score
change it paid for.

Functions never mutate their inputs. They return new Entry / CostAccounting
objects so a callback that raises halfway leaves the live entry untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from doclens_store.models import (
    CostAccounting,
    CostInfo,
    ImprovementMetrics,
    OperationCost,
    OperationKind,
    utc_now,
)

if TYPE_CHECKING:
    from doclens_store.models import Entry

logger = logging.getLogger(__name__)

_BUCKETS = {
    OperationKind.REVIEW: "review_costs",
    OperationKind.IMPROVE: "improvement_costs",
    OperationKind.GENERATE: "generation_costs",
}


@dataclass
class CostTotals:
    review: float = 0.0
    improvement: float = 0.0
    generation: float = 0.0
    total: float = 0.0


@dataclass
class CostSummary:
    """Aggregate spend across all (or one) entries."""

    totals: CostTotals = field(default_factory=CostTotals)
    by_entry: dict[str, CostAccounting] = field(default_factory=dict)
    total_operations: int = 0
    average_cost_per_quality_point: float = 0.0


def new_cost_accounting() -> CostAccounting:
    return CostAccounting(last_updated=utc_now())


def ensure_cost_accounting(entry: Entry) -> Entry:
    """Return the entry with a zero-valued ledger if it predates cost tracking."""
    if entry.cost_accounting is not None:
        return entry
    return replace(entry, cost_accounting=new_cost_accounting())


def record_operation(
    entry: Entry,
    kind: OperationKind | str,
    cost_info: CostInfo,
    score_before: float | None = None,
    score_after: float | None = None,
) -> Entry:
    """Append one paid operation to the entry's ledger and return the new entry.

    For improve operations with both scores supplied, quality-return metrics
    are attached to the most recent review history record.
    """
    kind = OperationKind(kind)
    entry = ensure_cost_accounting(entry)
    current = entry.cost_accounting

    op = OperationCost(
        operation=kind.value,
        cost=cost_info.total_cost,
        provider=cost_info.provider,
        model=cost_info.model,
        input_tokens=cost_info.input_tokens,
        output_tokens=cost_info.output_tokens,
        timestamp=cost_info.timestamp,
    )

    bucket = _BUCKETS[kind]
    accounting = replace(
        current,
        operation_history=[*current.operation_history, op],
        last_updated=utc_now(),
    )
    setattr(accounting, bucket, getattr(current, bucket) + cost_info.total_cost)
    accounting.total_cost = accounting.review_costs + accounting.improvement_costs + accounting.generation_costs

    history = entry.review_history
    if kind is OperationKind.IMPROVE and score_before is not None and score_after is not None:
        delta = score_after - score_before
        metrics = ImprovementMetrics(
            score_before=score_before,
            score_after=score_after,
            quality_delta=delta,
            cost_per_quality_point=cost_info.total_cost / delta if delta > 0 else 0.0,
            iteration_number=entry.improvement_iterations,
        )
        if history:
            history = [*history[:-1], replace(history[-1], improvement_metrics=metrics, cost_info=op)]
        else:
            logger.debug("No review history on %s; improvement metrics not attached", entry.identifier)

    return replace(entry, cost_accounting=accounting, review_history=history)


def summarize(entries: dict[str, Entry], identifier: str | None = None) -> CostSummary:
    """Aggregate cost buckets, per-entry ledgers and quality return.

    Entries without a ledger contribute nothing; ``by_entry`` holds copies of
    each ledger. The average cost per quality point is the spend of every
    improve that recorded metrics divided by the sum of the positive quality
    deltas, or 0 when none was ever positive.
    """
    if identifier is not None:
        selected = {identifier: entries[identifier]} if identifier in entries else {}
    else:
        selected = entries

    summary = CostSummary()
    improve_cost = 0.0
    quality_points = 0.0

    for key, entry in selected.items():
        costs = entry.cost_accounting
        if costs is None:
            continue
        summary.by_entry[key] = replace(costs, operation_history=[replace(op) for op in costs.operation_history])
        summary.totals.review += costs.review_costs
        summary.totals.improvement += costs.improvement_costs
        summary.totals.generation += costs.generation_costs
        summary.total_operations += len(costs.operation_history)

        for record in entry.review_history:
            metrics = record.improvement_metrics
            if metrics is None:
                continue
            improve_cost += record.cost_info.cost if record.cost_info else 0.0
            if metrics.quality_delta > 0:
                quality_points += metrics.quality_delta

    summary.totals.total = summary.totals.review + summary.totals.improvement + summary.totals.generation
    summary.average_cost_per_quality_point = improve_cost / quality_points if quality_points > 0 else 0.0
    return summary
