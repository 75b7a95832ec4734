"""Tests for statistical transforms: correlation, volatility, averages, trends."""

from __future__ import annotations

import statistics
from datetime import date, timedelta

import pytest

from moodlens.domains.mood.domain_logic.models import DIMENSIONS, DailySeries, Dimension, Trend
from moodlens.domains.mood.domain_logic.transforms import (
    average_levels,
    average_mood_by_timescale,
    classify_trend,
    correlation,
    correlation_matrix,
    expanding_average,
    health_correlations,
    sliding_average,
    volatility,
)


def _series(elevation, depression=None, anxiety=None, irritability=None) -> DailySeries:
    n = len(elevation)
    blank = (None,) * n
    start = date(2026, 3, 1)
    return DailySeries(
        dates=tuple(start + timedelta(days=i) for i in range(n)),
        levels={
            Dimension.ELEVATION: tuple(elevation),
            Dimension.DEPRESSION: tuple(depression) if depression else blank,
            Dimension.ANXIETY: tuple(anxiety) if anxiety else blank,
            Dimension.IRRITABILITY: tuple(irritability) if irritability else blank,
        },
        flags=(frozenset(),) * n,
    )


class TestCorrelation:
    def test_perfect_positive_and_negative(self):
        assert correlation([0, 1, 2, 3], [1, 2, 3, 4]) == pytest.approx(1.0)
        assert correlation([0, 1, 2, 3], [4, 3, 2, 1]) == pytest.approx(-1.0)

    def test_symmetric_and_bounded(self):
        x = [0, 3, 1, 4, 2, None, 3]
        y = [1, 1, 4, 0, 2, 3, None]
        r = correlation(x, y)
        assert r is not None
        assert -1.0 <= r <= 1.0
        assert correlation(y, x) == r

    def test_only_paired_days_count(self):
        # Two pairs only once the None days are dropped
        assert correlation([1, None, 3, 4], [2, 5, None, 1]) is None

    def test_fewer_than_three_pairs(self):
        assert correlation([1, 2], [2, 1]) is None

    def test_zero_variance_is_absent(self):
        assert correlation([2, 2, 2, 2], [0, 1, 2, 3]) is None

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="lengths differ"):
            correlation([1, 2, 3], [1, 2])

    def test_matrix_is_symmetric_with_unit_diagonal(self):
        series = _series(
            [0, 1, 2, 3, 4, 3],
            depression=[4, 3, 2, 1, 0, 1],
            anxiety=[1, 3, 0, 2, 2, 4],
            irritability=[2, 2, 2, 2, 2, 2],
        )
        matrix = correlation_matrix(series)
        assert len(matrix) == len(DIMENSIONS) ** 2
        for a in DIMENSIONS:
            for b in DIMENSIONS:
                assert matrix[(a, b)] == matrix[(b, a)]
        assert matrix[(Dimension.ELEVATION, Dimension.ELEVATION)] == pytest.approx(1.0)
        assert matrix[(Dimension.ELEVATION, Dimension.DEPRESSION)] == pytest.approx(-1.0)
        # Constant irritability has no variance
        assert matrix[(Dimension.IRRITABILITY, Dimension.IRRITABILITY)] is None
        assert matrix[(Dimension.ELEVATION, Dimension.IRRITABILITY)] is None

    def test_health_correlations_keyed_by_metric_and_dimension(self):
        series = _series([0, 1, 2, 3])
        result = health_correlations(series, {"sleep_hours": (5.0, 6.0, 7.0, 8.0)})
        assert result[("sleep_hours", Dimension.ELEVATION)] == pytest.approx(1.0)
        assert result[("sleep_hours", Dimension.ANXIETY)] is None
        assert len(result) == len(DIMENSIONS)


class TestVolatility:
    def test_constant_series_has_zero_volatility(self):
        out = volatility([2] * 6, window=14)
        assert out[:2] == (None, None)
        assert all(v == 0.0 for v in out[2:])

    def test_fewer_than_two_differences_is_absent(self):
        assert volatility([1, 3], window=14) == (None, None)
        # Gaps break adjacency: no valid differences at all
        assert volatility([1, None, 3, None, 2], window=14) == (None,) * 5

    def test_sample_std_of_adjacent_differences(self):
        values = [0, 2, 1, 4]
        out = volatility(values, window=14)
        assert out[3] == pytest.approx(statistics.stdev([2, -1, 3]))

    def test_window_limits_differences(self):
        values = [0, 4, 0, 1, 2, 3]
        out = volatility(values, window=3)
        # Day 5 window covers days 3..5: differences (2-1) and (3-2)
        assert out[5] == pytest.approx(0.0)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            volatility([1, 2, 3], window=0)


class TestAverages:
    def test_sliding_average_leading_days_use_partial_window(self):
        out = sliding_average([2, 2, 2, 3, 3], window=3)
        assert out[0] == pytest.approx(2.0)
        assert out[3] == pytest.approx(7 / 3)
        assert out[4] == pytest.approx(8 / 3)

    def test_sliding_average_skips_absent_days(self):
        out = sliding_average([4, None, 2, None, None, None], window=3)
        assert out[2] == pytest.approx(3.0)
        assert out[4] == pytest.approx(2.0)
        assert out[5] is None

    def test_expanding_average(self):
        assert expanding_average([None, 2, None, 4]) == (None, 2.0, 2.0, 3.0)

    def test_average_levels_trailing_window(self):
        series = _series([0, 0, 4, 4])
        assert average_levels(series)[Dimension.ELEVATION] == pytest.approx(2.0)
        assert average_levels(series, 2)[Dimension.ELEVATION] == pytest.approx(4.0)
        assert average_levels(series)[Dimension.ANXIETY] is None

    def test_average_mood_by_timescale_covers_every_scale(self):
        result = average_mood_by_timescale(_series([1, 2, 3]))
        assert set(result) == {"month", "three_months", "six_months", "year", "all"}
        assert result["all"][Dimension.ELEVATION] == pytest.approx(2.0)


class TestTrend:
    def test_up_down_stable(self):
        assert classify_trend([1, 1, 1, 3, 3, 3], window=3) is Trend.UP
        assert classify_trend([3, 3, 3, 1, 1, 1], window=3) is Trend.DOWN
        assert classify_trend([2, 2, 2, 2, 2, 2], window=3) is Trend.STABLE

    def test_small_change_is_stable(self):
        # Mean change of 1/5 stays under the threshold
        assert classify_trend([2, 2, 2, 2, 2, 2, 2, 2, 2, 3], window=5) is Trend.STABLE

    def test_missing_previous_window_is_absent(self):
        assert classify_trend([1, 2, 3], window=3) is None
        assert classify_trend([None, None, None, 1, 2, 3], window=3) is None

    def test_empty(self):
        assert classify_trend([], window=7) is None
