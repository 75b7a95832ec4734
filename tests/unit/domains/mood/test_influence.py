"""Tests for categorical influence scores and category tallies."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from moodlens.domains.mood.domain_logic.influence import (
    analyze_group,
    influence,
    tally,
    tally_by_timescale,
)
from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    Category,
    CategoryGroup,
    DailySeries,
    Dimension,
)

WALKING = Category(CategoryGroup.ACTIVITY, "walking")
NAP = Category(CategoryGroup.ACTIVITY, "nap")
RAIN = Category(CategoryGroup.HASHTAG, "rain")


def _series(elevation, flags) -> DailySeries:
    n = len(elevation)
    return DailySeries(
        dates=tuple(date(2026, 3, 1) + timedelta(days=i) for i in range(n)),
        levels={
            d: tuple(elevation) if d is Dimension.ELEVATION else (None,) * n
            for d in DIMENSIONS
        },
        flags=tuple(frozenset(f) for f in flags),
    )


class TestInfluence:
    def test_mean_with_and_without(self):
        series = _series(
            [3, 3, 3, 1, 1, 1],
            [{WALKING}, {WALKING}, {WALKING}, set(), set(), set()],
        )
        result = influence(series, WALKING, Dimension.ELEVATION, min_samples=3)
        assert result.sufficient
        assert result.mean_with == pytest.approx(3.0)
        assert result.mean_without == pytest.approx(1.0)
        assert result.delta == pytest.approx(2.0)
        assert (result.sample_size_with, result.sample_size_without) == (3, 3)

    def test_days_without_level_do_not_count(self):
        series = _series(
            [3, None, 3, 1, 1],
            [{WALKING}, {WALKING}, {WALKING}, set(), set()],
        )
        result = influence(series, WALKING, Dimension.ELEVATION, min_samples=2)
        assert result.sample_size_with == 2
        assert result.sample_size_without == 2

    def test_insufficient_samples_keep_sizes_but_no_means(self):
        series = _series([3, 1, 1, 1], [{WALKING}, set(), set(), set()])
        result = influence(series, WALKING, Dimension.ELEVATION, min_samples=3)
        assert not result.sufficient
        assert result.mean_with is None
        assert result.delta is None
        assert (result.sample_size_with, result.sample_size_without) == (1, 3)

    def test_no_present_days(self):
        result = influence(_series([None, None], [{WALKING}, set()]), WALKING, Dimension.ANXIETY)
        assert result.delta is None
        assert (result.sample_size_with, result.sample_size_without) == (0, 0)


class TestAnalyzeGroup:
    def test_hidden_categories_excluded(self, registry):
        series = _series([1, 2, 3], [{WALKING, NAP}, set(), {NAP}])
        result = analyze_group(series, registry, CategoryGroup.ACTIVITY, min_samples=1)
        assert list(result) == ["walking", "work"]
        assert set(result["walking"]) == set(DIMENSIONS)

    def test_hashtags_come_from_series(self, registry):
        series = _series([1, 2, 3], [{RAIN}, set(), {WALKING}])
        result = analyze_group(series, registry, CategoryGroup.HASHTAG, min_samples=1)
        assert list(result) == ["rain"]
        assert result["rain"][Dimension.ELEVATION].delta == pytest.approx(1 - 2.5)


class TestTally:
    def test_counts_with_zero_entries(self, registry):
        series = _series([1, 1, 1], [{WALKING, RAIN}, {WALKING}, {NAP}])
        counts = tally(series, registry)
        assert counts[CategoryGroup.ACTIVITY] == {"walking": 2, "work": 0}
        assert counts[CategoryGroup.SYMPTOM] == {"low_energy": 0, "panic": 0}
        assert counts[CategoryGroup.HASHTAG] == {"rain": 1}

    def test_trailing_window(self, registry):
        series = _series([1, 1, 1], [{WALKING, RAIN}, {WALKING}, set()])
        counts = tally(series, registry, days=2)
        assert counts[CategoryGroup.ACTIVITY]["walking"] == 1
        assert counts[CategoryGroup.HASHTAG] == {}

    def test_by_timescale(self, registry):
        series = _series([1] * 40, [{WALKING}] * 40)
        by_scale = tally_by_timescale(series, registry)
        assert by_scale["month"][CategoryGroup.ACTIVITY]["walking"] == 30
        assert by_scale["all"][CategoryGroup.ACTIVITY]["walking"] == 40
