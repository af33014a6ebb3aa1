"""Tests for ContentWorkflow orchestration.

Collaborators are replaced with small in-process fakes: a dict-backed
content source, a deterministic assessor and a MemoryStore (or a real
JSONFileStore where persistence matters). Batch pauses go through an
injected recording sleep, so no test waits on the wall clock.
"""

from __future__ import annotations

import asyncio

import pytest

from doclens_core.errors import (
    AlreadyReviewedError,
    AssessorError,
    IntegrityRejectedError,
    NotFoundError,
    PersistenceError,
)
from doclens_core.providers.base import Assessment, DimensionAnalysis, Improvement, QualityAssessor
from doclens_core.sources.base import ContentSource
from doclens_core.workflow import ContentWorkflow
from doclens_store.json_file import JSONFileStore
from doclens_store.memory import MemoryStore
from doclens_store.models import DIMENSIONS, CostInfo, Database, Entry, Status

DOC = "# Title\n\n" + "A sentence about the topic that could be clearer. " * 10


class FakeSource(ContentSource):
    def __init__(self, docs: dict[str, str]):
        self.docs = dict(docs)
        self.reads: list[str] = []
        self.writes: list[tuple[str, str]] = []

    async def list(self) -> list[str]:
        return sorted(self.docs)

    async def read(self, identifier: str) -> str:
        self.reads.append(identifier)
        await asyncio.sleep(0)
        return self.docs[identifier]

    async def write(self, identifier: str, text: str) -> None:
        self.writes.append((identifier, text))
        self.docs[identifier] = text


class FakeAssessor(QualityAssessor):
    """Scores text by lookup; everything else scores ``default``."""

    def __init__(self, scores=None, default=7.5, after=9.0, improve_fn=None, model="fake-1"):
        self.scores = scores or {}
        self.default = default
        self.after = after
        self.improve_fn = improve_fn or (lambda text: text + "\n\nA new, concrete example.")
        self.improved: set[str] = set()
        self.score_calls = 0
        self.improve_calls = 0
        self.model = model

    async def score(self, text: str) -> Assessment:
        self.score_calls += 1
        await asyncio.sleep(0)
        if "FAIL" in text:
            raise AssessorError("provider exploded")
        value = self.after if text in self.improved else self.scores.get(text, self.default)
        return Assessment(
            scores={dim: value for dim in DIMENSIONS},
            analysis={dim: DimensionAnalysis("ok", [f"tighten {dim}"]) for dim in DIMENSIONS},
            cost_info=CostInfo(provider="fake", model=self.model, total_cost=0.01),
        )

    async def improve(self, text: str, assessment: Assessment) -> Improvement:
        self.improve_calls += 1
        result = self.improve_fn(text)
        self.improved.add(result)
        return Improvement(text=result, cost_info=CostInfo(provider="fake", model=self.model, total_cost=0.05))


class RecordingSleep:
    def __init__(self, on_sleep=None):
        self.calls: list[float] = []
        self.on_sleep = on_sleep

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.on_sleep:
            self.on_sleep()


def _scored_entry(identifier, avg, status=Status.NEEDS_IMPROVEMENT):
    return Entry(identifier=identifier, current_scores={dim: avg for dim in DIMENSIONS}, status=status)


def _workflow(store, source, assessor=None, **kwargs):
    kwargs.setdefault("sleep", RecordingSleep())
    return ContentWorkflow(store, source, assessor if assessor is not None else FakeAssessor(), **kwargs)


@pytest.fixture
def docs(tmp_path):
    return {str(tmp_path / f"doc{i}.md"): f"{DOC} ({i})" for i in range(1, 8)}


# ---------------------------------------------------------------------------
# discover
# ---------------------------------------------------------------------------


class TestDiscover:
    @pytest.mark.asyncio
    async def test_creates_zero_scored_entries(self, docs):
        store = MemoryStore()
        wf = _workflow(store, FakeSource(docs), target_scores={"readability": 9.5})
        await wf.initialize()

        created = await wf.discover()

        assert created == sorted(docs)
        entry = store.get_data().entries[created[0]]
        assert entry.status is Status.NEEDS_REVIEW
        assert set(entry.current_scores.values()) == {0.0}
        assert entry.target_scores == {"readability": 9.5}
        assert entry.review_history == []

    @pytest.mark.asyncio
    async def test_is_idempotent(self, docs):
        store = MemoryStore()
        assessor = FakeAssessor()
        wf = _workflow(store, FakeSource(docs), assessor)
        await wf.initialize()

        await wf.discover()
        second = await wf.discover()

        assert second == []
        assert len(store.get_data().entries) == len(docs)
        assert assessor.score_calls == 0

    @pytest.mark.asyncio
    async def test_does_not_touch_existing_entries(self, docs):
        first = sorted(docs)[0]
        store = MemoryStore(Database(entries={first: _scored_entry(first, 8.0)}))
        wf = _workflow(store, FakeSource(docs))
        await wf.initialize()

        created = await wf.discover()

        assert first not in created
        assert store.get_data().entries[first].status is Status.NEEDS_IMPROVEMENT

    @pytest.mark.asyncio
    async def test_discover_and_report(self, docs):
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        result = await wf.discover_and_report()
        assert result.summary.total == result.summary.succeeded == len(docs)
        assert result.failed == []


# ---------------------------------------------------------------------------
# review_one
# ---------------------------------------------------------------------------


class TestReviewOne:
    @pytest.mark.asyncio
    async def test_transitions_out_of_needs_review(self, docs):
        identifier = sorted(docs)[0]
        store = MemoryStore()
        wf = _workflow(store, FakeSource(docs))
        await wf.initialize()
        await wf.discover()

        entry = await wf.review_one(identifier)

        assert entry.status is Status.NEEDS_IMPROVEMENT
        assert entry.current_scores["readability"] == 7.5
        assert len(entry.review_history) == 1
        assert entry.review_history[0].improvements == [f"tighten {dim}" for dim in DIMENSIONS]
        assert store.get_data().entries[identifier] is entry

    @pytest.mark.asyncio
    async def test_second_review_raises_already_reviewed(self, docs):
        identifier = sorted(docs)[0]
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        await wf.discover()
        await wf.review_one(identifier)

        with pytest.raises(AlreadyReviewedError):
            await wf.review_one(identifier)

    @pytest.mark.asyncio
    async def test_unknown_identifier_raises_not_found(self, docs):
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        with pytest.raises(NotFoundError):
            await wf.review_one("/nowhere/missing.md")

    @pytest.mark.asyncio
    async def test_records_review_cost(self, docs):
        identifier = sorted(docs)[0]
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        await wf.discover()

        entry = await wf.review_one(identifier)

        assert entry.cost_accounting.review_costs == pytest.approx(0.01)
        assert entry.cost_accounting.total_cost == pytest.approx(0.01)

    @pytest.mark.asyncio
    async def test_assessor_failure_leaves_entry_untouched(self, tmp_path):
        identifier = str(tmp_path / "bad.md")
        store = MemoryStore()
        wf = _workflow(store, FakeSource({identifier: "FAIL " + DOC}))
        await wf.initialize()
        await wf.discover()
        saves = store.save_count

        with pytest.raises(AssessorError):
            await wf.review_one(identifier)

        assert store.get_data().entries[identifier].status is Status.NEEDS_REVIEW
        assert store.save_count == saves

    @pytest.mark.asyncio
    async def test_high_score_meets_targets(self, docs):
        identifier = sorted(docs)[0]
        assessor = FakeAssessor(scores={docs[identifier]: 9.0})
        wf = _workflow(MemoryStore(), FakeSource(docs), assessor)
        await wf.initialize()
        await wf.discover()

        entry = await wf.review_one(identifier)

        assert entry.status is Status.MEETS_TARGETS


# ---------------------------------------------------------------------------
# worst-scoring selection
# ---------------------------------------------------------------------------


class TestWorstScoring:
    def _store(self):
        return MemoryStore(
            Database(
                entries={
                    "/c/a.md": _scored_entry("/c/a.md", 7.8),
                    "/c/b.md": _scored_entry("/c/b.md", 7.2),
                    "/c/c.md": _scored_entry("/c/c.md", 8.0),
                    "/c/unreviewed.md": _scored_entry("/c/unreviewed.md", 5.0, Status.NEEDS_REVIEW),
                    "/c/done.md": _scored_entry("/c/done.md", 9.5, Status.MEETS_TARGETS),
                    "/c/zero.md": _scored_entry("/c/zero.md", 0.0),
                }
            )
        )

    def test_returns_lowest_eligible(self):
        wf = _workflow(self._store(), FakeSource({}))
        assert wf.get_worst_scoring() == "/c/b.md"

    def test_many_sorted_ascending(self):
        wf = _workflow(self._store(), FakeSource({}))
        assert wf.get_worst_scoring_many(5) == ["/c/b.md", "/c/a.md", "/c/c.md"]
        assert wf.get_worst_scoring_many(2) == ["/c/b.md", "/c/a.md"]

    def test_ties_keep_first_encountered(self):
        store = MemoryStore(
            Database(entries={"/c/x.md": _scored_entry("/c/x.md", 7.5), "/c/y.md": _scored_entry("/c/y.md", 7.5)})
        )
        assert _workflow(store, FakeSource({})).get_worst_scoring() == "/c/x.md"

    def test_none_when_nothing_eligible(self):
        store = MemoryStore(Database(entries={"/c/n.md": _scored_entry("/c/n.md", 5.0, Status.NEEDS_REVIEW)}))
        assert _workflow(store, FakeSource({})).get_worst_scoring() is None


# ---------------------------------------------------------------------------
# improve_one
# ---------------------------------------------------------------------------


class TestImproveOne:
    @pytest.mark.asyncio
    async def test_successful_improvement(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        source = FakeSource({identifier: DOC})
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        wf = _workflow(store, source)
        await wf.initialize()

        entry = await wf.improve_one(identifier)

        assert entry.improvement_iterations == 1
        assert entry.current_scores["readability"] == 9.0
        assert entry.status is Status.MEETS_TARGETS
        assert source.writes == [(identifier, DOC + "\n\nA new, concrete example.")]
        record = entry.review_history[-1]
        assert record.improvements == [f"tighten {dim}" for dim in DIMENSIONS]
        assert record.improvement_metrics.score_before == 7.5
        assert record.improvement_metrics.score_after == 9.0
        assert record.improvement_metrics.quality_delta == pytest.approx(1.5)
        assert record.improvement_metrics.iteration_number == 1

    @pytest.mark.asyncio
    async def test_costs_committed_with_scores(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        wf = _workflow(store, FakeSource({identifier: DOC}))
        await wf.initialize()

        entry = await wf.improve_one(identifier)

        costs = entry.cost_accounting
        assert costs.review_costs == pytest.approx(0.02)
        assert costs.improvement_costs == pytest.approx(0.05)
        assert costs.total_cost == pytest.approx(0.07)
        assert [op.operation for op in costs.operation_history] == ["review", "improve", "review"]
        assert store.save_count == 1

    @pytest.mark.asyncio
    async def test_short_result_rejected_without_changes(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        db_path = tmp_path / ".doclens" / "content-db.json"
        store = JSONFileStore(db_path)
        await store.load()
        await store.update_entry(identifier, lambda current: _scored_entry(identifier, 7.5))
        before_db = db_path.read_text()
        source = FakeSource({identifier: DOC})
        assessor = FakeAssessor(improve_fn=lambda text: text[: int(len(text) * 0.2)])
        wf = _workflow(store, source, assessor)

        with pytest.raises(IntegrityRejectedError):
            await wf.improve_one(identifier)

        assert source.writes == []
        assert source.docs[identifier] == DOC
        assert db_path.read_text() == before_db
        assert store.get_data().entries[identifier].improvement_iterations == 0

    @pytest.mark.asyncio
    async def test_identical_result_rejected(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        source = FakeSource({identifier: DOC})
        wf = _workflow(store, source, FakeAssessor(improve_fn=lambda text: text))

        with pytest.raises(IntegrityRejectedError):
            await wf.improve_one(identifier)
        assert source.writes == []

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, tmp_path):
        wf = _workflow(MemoryStore(), FakeSource({}))
        with pytest.raises(NotFoundError):
            await wf.improve_one(str(tmp_path / "missing.md"))

    @pytest.mark.asyncio
    async def test_without_assessor(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        wf = ContentWorkflow(store, FakeSource({identifier: DOC}), None)
        with pytest.raises(AssessorError, match="No quality assessor"):
            await wf.improve_one(identifier)

    @pytest.mark.asyncio
    async def test_separate_improve_assessor_rewrites(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        rewritten = DOC + "\n\nA new, concrete example."
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        source = FakeSource({identifier: DOC})
        reviewer = FakeAssessor(scores={rewritten: 9.0}, model="cheap-1")
        rewriter = FakeAssessor(model="strong-1")
        wf = _workflow(store, source, reviewer, improve_assessor=rewriter)
        await wf.initialize()

        entry = await wf.improve_one(identifier)

        assert reviewer.score_calls == 2
        assert reviewer.improve_calls == 0
        assert rewriter.score_calls == 0
        assert rewriter.improve_calls == 1
        assert source.writes == [(identifier, rewritten)]
        assert entry.status is Status.MEETS_TARGETS
        history = entry.cost_accounting.operation_history
        assert [(op.operation, op.model) for op in history] == [
            ("review", "cheap-1"),
            ("improve", "strong-1"),
            ("review", "cheap-1"),
        ]

    @pytest.mark.asyncio
    async def test_review_assessor_used_when_no_improve_assessor(self, tmp_path):
        identifier = str(tmp_path / "a.md")
        store = MemoryStore(Database(entries={identifier: _scored_entry(identifier, 7.5)}))
        assessor = FakeAssessor()
        wf = _workflow(store, FakeSource({identifier: DOC}), assessor)

        await wf.improve_one(identifier)

        assert wf.improve_assessor is assessor
        assert assessor.improve_calls == 1


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------


class TestReviewAllBatch:
    @pytest.mark.asyncio
    async def test_groups_run_sequentially_with_pauses(self, docs):
        source = FakeSource(docs)
        started_at_pause = []
        sleep = RecordingSleep(on_sleep=lambda: started_at_pause.append(len(source.reads)))
        wf = _workflow(MemoryStore(), source, sleep=sleep, batch_size=3, review_delay=1.5)
        await wf.initialize()
        await wf.discover()

        result = await wf.review_all_batch()

        # Seven items in groups of [3, 3, 1]; no pause after the last group.
        assert started_at_pause == [3, 6]
        assert sleep.calls == [1.5, 1.5]
        assert result.summary.total == 7
        assert result.summary.succeeded == 7
        assert result.summary.duration >= 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(self, docs):
        ids = sorted(docs)
        docs[ids[1]] = "FAIL " + docs[ids[1]]
        store = MemoryStore()
        wf = _workflow(store, FakeSource(docs), batch_size=3)
        await wf.initialize()
        await wf.discover()

        result = await wf.review_all_batch()

        assert [f.identifier for f in result.failed] == [ids[1]]
        assert "provider exploded" in result.failed[0].error
        assert sorted(result.successful) == sorted(i for i in ids if i != ids[1])
        assert result.summary.failed == 1
        assert store.get_data().entries[ids[1]].status is Status.NEEDS_REVIEW

    @pytest.mark.asyncio
    async def test_batch_size_argument_overrides_default(self, docs):
        sleep = RecordingSleep()
        wf = _workflow(MemoryStore(), FakeSource(docs), sleep=sleep, batch_size=3)
        await wf.initialize()
        await wf.discover()

        await wf.review_all_batch(batch_size=7)

        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_zero_batch_size_argument_rejected(self, docs):
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        await wf.discover()

        with pytest.raises(ValueError, match="batch_size"):
            await wf.review_all_batch(batch_size=0)
        with pytest.raises(ValueError, match="batch_size"):
            await wf.improve_worst_batch(1, batch_size=0)

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        wf = _workflow(MemoryStore(), FakeSource({}))
        result = await wf.review_all_batch()
        assert result.summary.total == 0
        assert result.successful == []

    @pytest.mark.asyncio
    async def test_persistence_error_aborts_after_group(self, docs):
        class _FlakyStore(MemoryStore):
            fail = False

            async def save(self):
                if self.fail:
                    raise PersistenceError("disk full")
                await super().save()

        store = _FlakyStore()
        assessor = FakeAssessor()
        wf = _workflow(store, FakeSource(docs), assessor, batch_size=3)
        await wf.initialize()
        await wf.discover()
        store.fail = True

        with pytest.raises(PersistenceError):
            await wf.review_all_batch()

        # The first group ran to completion; no later group started.
        assert assessor.score_calls == 3


class TestImproveWorstBatch:
    @pytest.mark.asyncio
    async def test_improves_worst_first_with_improve_delay(self, tmp_path):
        ids = [str(tmp_path / f"{n}.md") for n in "abcd"]
        averages = [7.9, 7.1, 8.2, 7.4]
        store = MemoryStore(Database(entries={i: _scored_entry(i, avg) for i, avg in zip(ids, averages)}))
        source = FakeSource({i: DOC + i for i in ids})
        sleep = RecordingSleep()
        wf = _workflow(store, source, sleep=sleep, batch_size=2, improve_delay=4.0)

        result = await wf.improve_worst_batch(3)

        assert sorted(result.successful) == sorted([ids[1], ids[3], ids[0]])
        assert sorted(w[0] for w in source.writes[:2]) == sorted([ids[1], ids[3]])
        assert sleep.calls == [4.0]
        assert store.get_data().entries[ids[2]].improvement_iterations == 0

    @pytest.mark.asyncio
    async def test_rejected_item_recorded_as_failure(self, tmp_path):
        good, bad = str(tmp_path / "good.md"), str(tmp_path / "bad.md")
        store = MemoryStore(Database(entries={good: _scored_entry(good, 7.5), bad: _scored_entry(bad, 7.2)}))
        source = FakeSource({good: DOC, bad: "short doc " * 50})
        assessor = FakeAssessor(improve_fn=lambda text: "x" if text.startswith("short") else text + " more")
        wf = _workflow(store, source, assessor)

        result = await wf.improve_worst_batch(2)

        assert result.successful == [good]
        assert [f.identifier for f in result.failed] == [bad]
        assert "rejected" in result.failed[0].error


class TestFullWorkflow:
    @pytest.mark.asyncio
    async def test_runs_phases_in_order(self, docs):
        ids = sorted(docs)
        assessor = FakeAssessor(scores={docs[ids[0]]: 7.0, docs[ids[1]]: 9.0})
        store = MemoryStore()
        wf = _workflow(store, FakeSource(docs), assessor, batch_size=4)
        await wf.initialize()

        report = await wf.run_full_workflow(improve_count=1)

        assert report.discovery.summary.succeeded == 7
        assert report.review.summary.succeeded == 7
        assert report.improvement.successful == [ids[0]]
        entries = store.get_data().entries
        assert entries[ids[0]].improvement_iterations == 1
        assert entries[ids[1]].status is Status.MEETS_TARGETS


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class TestReporting:
    def test_get_status(self):
        store = MemoryStore(
            Database(
                entries={
                    "/c/a.md": _scored_entry("/c/a.md", 7.25),
                    "/c/b.md": _scored_entry("/c/b.md", 9.0, Status.MEETS_TARGETS),
                    "/c/n.md": _scored_entry("/c/n.md", 0.0, Status.NEEDS_REVIEW),
                }
            )
        )
        status = _workflow(store, FakeSource({})).get_status()
        assert status.total == 3
        assert status.needs_review == 1
        assert status.needs_improvement == 1
        assert status.meets_targets == 1
        assert status.average_score == 5.4
        assert status.worst_scoring == "/c/a.md"

    @pytest.mark.asyncio
    async def test_cost_summary(self, docs):
        wf = _workflow(MemoryStore(), FakeSource(docs))
        await wf.initialize()
        await wf.discover()
        await wf.review_all_batch()

        summary = wf.cost_summary()
        assert summary.totals.review == pytest.approx(0.07)
        assert summary.total_operations == 7
        assert wf.cost_summary(sorted(docs)[0]).totals.total == pytest.approx(0.01)

    @pytest.mark.asyncio
    async def test_estimate_none_without_capability(self, docs):
        wf = _workflow(MemoryStore(), FakeSource(docs))
        assert await wf.estimate_review_cost() is None

    @pytest.mark.asyncio
    async def test_estimate_sums_pending_documents(self, docs):
        from doclens_core.providers.base import CostEstimator

        class _EstimatingAssessor(FakeAssessor, CostEstimator):
            def estimate_cost(self, text: str) -> float:
                return 0.5

        wf = _workflow(MemoryStore(), FakeSource(docs), _EstimatingAssessor())
        await wf.initialize()
        await wf.discover()
        assert await wf.estimate_review_cost() == pytest.approx(3.5)
