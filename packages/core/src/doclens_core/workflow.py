"""Content workflow orchestration: discover, review and improve.

The workflow composes four collaborators:
  - a ContentSource that lists, reads and writes documents
  - a QualityAssessor that scores and rewrites text
  - a BaseStore holding the content database
  - the status classifier and cost ledger, applied inside each commit

Every state change goes through ``store.update_entry`` so the in-memory
database and the persisted one never diverge for longer than one call, and
a score change is committed together with the cost that paid for it.

Batch operations split their targets into fixed-size groups. Items inside a
group run concurrently; groups run strictly one after another with a pause
in between to respect provider rate limits. One item failing never stops
its siblings. A PersistenceError is different: the database can no longer
be written, so the batch stops after the group in flight and re-raises.

Scoring and rewriting may use different assessors, so cheap reviews can go
to one model and rewrites to a stronger one. Without a dedicated improve
assessor both operations share the review assessor.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Optional

from doclens_core.classifier import average_score, classify
from doclens_core.errors import AlreadyReviewedError, AssessorError, NotFoundError, PersistenceError
from doclens_core.integrity import validate_improvement
from doclens_core.providers.base import CostEstimator, QualityAssessor
from doclens_core.sources.base import ContentSource
from doclens_store.base import BaseStore
from doclens_store.ledger import CostSummary, record_operation, summarize
from doclens_store.models import (
    DEFAULT_TARGET_SCORES,
    Entry,
    OperationKind,
    ReviewRecord,
    Status,
    utc_now,
    zero_scores,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class BatchFailure:
    identifier: str
    error: str


@dataclass
class BatchSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    duration: float = 0.0  # seconds


@dataclass
class BatchResult:
    """Outcome of a batch operation: what succeeded, what failed and why."""

    successful: list[str] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)


@dataclass
class WorkflowReport:
    discovery: BatchResult
    review: BatchResult
    improvement: BatchResult


@dataclass
class StatusReport:
    total: int
    needs_review: int
    needs_improvement: int
    meets_targets: int
    average_score: float
    worst_scoring: Optional[str]


class ContentWorkflow:
    """Drives documents through the discover → review → improve lifecycle."""

    def __init__(
        self,
        store: BaseStore,
        source: ContentSource,
        assessor: Optional[QualityAssessor],
        *,
        improve_assessor: Optional[QualityAssessor] = None,
        target_scores: Optional[dict[str, float]] = None,
        batch_size: int = 3,
        review_delay: float = 1.0,
        improve_delay: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.store = store
        self.source = source
        self.assessor = assessor
        self.improve_assessor = improve_assessor or assessor
        self.target_scores = dict(target_scores or DEFAULT_TARGET_SCORES)
        self.batch_size = batch_size
        self.review_delay = review_delay
        self.improve_delay = improve_delay
        self._sleep = sleep
        # Cost estimation is an optional capability, checked once here.
        self._estimator: Optional[CostEstimator] = assessor if isinstance(assessor, CostEstimator) else None

    async def initialize(self) -> None:
        await self.store.load()

    # ------------------------------------------------------------------ #
    # Single-item operations                                              #
    # ------------------------------------------------------------------ #

    async def discover(self) -> list[str]:
        """Track every listed document not yet in the database.

        New entries are zero-scored and ``needs_review``; no assessor call is
        made. Returns the newly created identifiers.
        """
        identifiers = await self.source.list()
        entries = self.store.get_data().entries
        created = []
        for identifier in identifiers:
            if identifier in entries:
                continue
            await self.store.update_entry(identifier, self._new_entry_fn(identifier))
            created.append(identifier)
        logger.info("Discovered %d new document(s) out of %d listed", len(created), len(identifiers))
        return created

    async def review_one(self, identifier: str) -> Entry:
        """Score an unreviewed document and move it out of ``needs_review``."""
        entry = self._require(identifier)
        if entry.status is not Status.NEEDS_REVIEW:
            raise AlreadyReviewedError(identifier, entry.status.value)

        text = await self.source.read(identifier)
        assessment = await self._require_assessor().score(text)
        suggestions = assessment.suggestions()

        def apply(current: Optional[Entry]) -> Entry:
            if current is None:
                raise NotFoundError(identifier)
            # Another coroutine may have reviewed it while we were scoring.
            if current.status is not Status.NEEDS_REVIEW:
                raise AlreadyReviewedError(identifier, current.status.value)
            now = utc_now()
            updated = replace(
                current,
                current_scores=dict(assessment.scores),
                status=classify(assessment.scores),
                review_history=[
                    *current.review_history,
                    ReviewRecord(timestamp=now, scores=dict(assessment.scores), improvements=suggestions),
                ],
                last_review_date=now,
            )
            if assessment.cost_info is not None:
                updated = record_operation(updated, OperationKind.REVIEW, assessment.cost_info)
            return updated

        updated = await self.store.update_entry(identifier, apply)
        logger.info("Reviewed %s: %.1f (%s)", identifier, updated.average_score(), updated.status.value)
        return updated

    def get_worst_scoring(self) -> Optional[str]:
        """Return the eligible entry with the lowest positive average score."""
        worst = self.get_worst_scoring_many(1)
        return worst[0] if worst else None

    def get_worst_scoring_many(self, count: int) -> list[str]:
        """Return up to ``count`` eligible identifiers, lowest average first.

        Entries still awaiting review or already meeting targets are not
        eligible, nor is any entry averaging exactly 0 (never scored). Ties
        keep the order entries were first recorded in.
        """
        candidates = []
        for identifier, entry in self.store.get_data().entries.items():
            if entry.status in (Status.NEEDS_REVIEW, Status.MEETS_TARGETS):
                continue
            avg = entry.average_score()
            if avg > 0:
                candidates.append((avg, identifier))
        # sorted() is stable, so equal averages stay in insertion order.
        candidates = sorted(candidates, key=lambda c: c[0])
        return [identifier for _, identifier in candidates[: max(count, 0)]]

    def content_needing_review(self) -> list[str]:
        return [i for i, e in self.store.get_data().entries.items() if e.status is Status.NEEDS_REVIEW]

    async def improve_one(self, identifier: str) -> Entry:
        """Rewrite a document, validate the result, re-score it and commit.

        Both scores come from the review assessor and the rewrite from the
        improve assessor. A rejected rewrite raises IntegrityRejectedError
        before anything is written to either the content source or the store.
        """
        self._require(identifier)

        scorer = self._require_assessor()
        rewriter = self.improve_assessor
        original = await self.source.read(identifier)
        before = await scorer.score(original)
        improvement = await rewriter.improve(original, before)
        validate_improvement(original, improvement.text)
        after = await scorer.score(improvement.text)

        await self.source.write(identifier, improvement.text)

        score_before = average_score(before.scores)
        score_after = average_score(after.scores)
        suggestions = before.suggestions()

        def apply(current: Optional[Entry]) -> Entry:
            if current is None:
                raise NotFoundError(identifier)
            now = utc_now()
            updated = replace(
                current,
                current_scores=dict(after.scores),
                status=classify(after.scores),
                improvement_iterations=current.improvement_iterations + 1,
                review_history=[
                    *current.review_history,
                    ReviewRecord(timestamp=now, scores=dict(after.scores), improvements=suggestions),
                ],
                last_review_date=now,
            )
            if before.cost_info is not None:
                updated = record_operation(updated, OperationKind.REVIEW, before.cost_info)
            if improvement.cost_info is not None:
                updated = record_operation(
                    updated,
                    OperationKind.IMPROVE,
                    improvement.cost_info,
                    score_before=score_before,
                    score_after=score_after,
                )
            if after.cost_info is not None:
                updated = record_operation(updated, OperationKind.REVIEW, after.cost_info)
            return updated

        updated = await self.store.update_entry(identifier, apply)
        logger.info("Improved %s: %.1f -> %.1f (%s)", identifier, score_before, score_after, updated.status.value)
        return updated

    # ------------------------------------------------------------------ #
    # Batch operations                                                     #
    # ------------------------------------------------------------------ #

    async def discover_and_report(self) -> BatchResult:
        started = time.monotonic()
        created = await self.discover()
        return BatchResult(
            successful=created,
            summary=BatchSummary(
                total=len(created),
                succeeded=len(created),
                duration=time.monotonic() - started,
            ),
        )

    async def review_all_batch(self, batch_size: Optional[int] = None) -> BatchResult:
        """Review every ``needs_review`` entry in groups."""
        targets = self.content_needing_review()
        logger.info("Reviewing %d document(s)", len(targets))
        return await self._run_batch(targets, self.review_one, batch_size, self.review_delay)

    async def improve_worst_batch(self, count: int, batch_size: Optional[int] = None) -> BatchResult:
        """Improve the ``count`` worst-scoring eligible entries in groups."""
        targets = self.get_worst_scoring_many(count)
        logger.info("Improving %d document(s)", len(targets))
        return await self._run_batch(targets, self.improve_one, batch_size, self.improve_delay)

    async def run_full_workflow(self, improve_count: int = 1, batch_size: Optional[int] = None) -> WorkflowReport:
        """Discover, review everything new, then improve the worst entries."""
        discovery = await self.discover_and_report()
        review = await self.review_all_batch(batch_size)
        improvement = await self.improve_worst_batch(improve_count, batch_size)
        return WorkflowReport(discovery=discovery, review=review, improvement=improvement)

    async def _run_batch(
        self,
        identifiers: list[str],
        operation: Callable[[str], Awaitable[Entry]],
        batch_size: Optional[int],
        delay: float,
    ) -> BatchResult:
        if batch_size is None:
            batch_size = self.batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        started = time.monotonic()
        result = BatchResult()
        groups = [identifiers[i : i + batch_size] for i in range(0, len(identifiers), batch_size)]

        for index, group in enumerate(groups):
            logger.debug("Batch group %d/%d: %d item(s)", index + 1, len(groups), len(group))
            outcomes = await asyncio.gather(*(operation(i) for i in group), return_exceptions=True)

            fatal: Optional[PersistenceError] = None
            for identifier, outcome in zip(group, outcomes):
                if isinstance(outcome, PersistenceError):
                    fatal = fatal or outcome
                    result.failed.append(BatchFailure(identifier, str(outcome)))
                elif isinstance(outcome, Exception):
                    logger.warning("Failed on %s: %s", identifier, outcome)
                    result.failed.append(BatchFailure(identifier, str(outcome)))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    result.successful.append(identifier)

            if fatal is not None:
                logger.error("Store failure, aborting batch after group %d/%d: %s", index + 1, len(groups), fatal)
                raise fatal

            if index < len(groups) - 1 and delay > 0:
                await self._sleep(delay)

        result.summary = BatchSummary(
            total=len(identifiers),
            succeeded=len(result.successful),
            failed=len(result.failed),
            duration=time.monotonic() - started,
        )
        return result

    # ------------------------------------------------------------------ #
    # Reporting                                                            #
    # ------------------------------------------------------------------ #

    def get_status(self) -> StatusReport:
        entries = list(self.store.get_data().entries.values())
        by_status = {s: 0 for s in Status}
        for entry in entries:
            by_status[entry.status] += 1

        averages = [e.average_score() for e in entries if e.current_scores]
        overall = sum(averages) / len(averages) if averages else 0.0
        return StatusReport(
            total=len(entries),
            needs_review=by_status[Status.NEEDS_REVIEW],
            needs_improvement=by_status[Status.NEEDS_IMPROVEMENT],
            meets_targets=by_status[Status.MEETS_TARGETS],
            average_score=round(overall, 1),
            worst_scoring=self.get_worst_scoring(),
        )

    def cost_summary(self, identifier: Optional[str] = None) -> CostSummary:
        return summarize(self.store.get_data().entries, identifier)

    async def estimate_review_cost(self) -> Optional[float]:
        """Estimated spend of reviewing everything pending, or None if the
        assessor cannot estimate."""
        if self._estimator is None:
            return None
        total = 0.0
        for identifier in self.content_needing_review():
            total += self._estimator.estimate_cost(await self.source.read(identifier))
        return total

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _require(self, identifier: str) -> Entry:
        entry = self.store.get_data().entries.get(identifier)
        if entry is None:
            raise NotFoundError(identifier)
        return entry

    def _require_assessor(self) -> QualityAssessor:
        if self.assessor is None:
            raise AssessorError("No quality assessor configured")
        return self.assessor

    def _new_entry_fn(self, identifier: str) -> Callable[[Optional[Entry]], Entry]:
        def create(current: Optional[Entry]) -> Entry:
            # Discovery seeds status directly rather than classifying zeros.
            if current is not None:
                return current
            return Entry(
                identifier=identifier,
                current_scores=zero_scores(),
                target_scores=dict(self.target_scores),
                status=Status.NEEDS_REVIEW,
            )

        return create
