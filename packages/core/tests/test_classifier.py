"""Tests for status classification."""

import pytest

from doclens_core.classifier import average_score, classify
from doclens_store.models import DIMENSIONS, Status


def _uniform(value):
    return {dim: value for dim in DIMENSIONS}


class TestClassify:
    def test_exactly_meets_targets_threshold(self):
        assert classify(_uniform(8.5)) is Status.MEETS_TARGETS

    def test_exactly_needs_improvement_threshold(self):
        assert classify(_uniform(7.0)) is Status.NEEDS_IMPROVEMENT

    def test_just_below_improvement_threshold(self):
        assert classify(_uniform(6.999)) is Status.NEEDS_REVIEW

    def test_just_below_meets_targets(self):
        assert classify(_uniform(8.49)) is Status.NEEDS_IMPROVEMENT

    def test_uses_mean_not_minimum(self):
        scores = {"readability": 10.0, "seoScore": 7.0}
        assert classify(scores) is Status.MEETS_TARGETS

    def test_all_zero_needs_review(self):
        assert classify(_uniform(0.0)) is Status.NEEDS_REVIEW

    def test_empty_scores_rejected(self):
        with pytest.raises(ValueError):
            classify({})


def test_average_score():
    assert average_score({"a": 6.0, "b": 8.0}) == 7.0
