"""Statistical transforms over per-dimension daily series.

Every transform takes sequences of optional numbers (``None`` = no data for
that day) and propagates absence: a statistic without enough samples is
``None``, never zero.
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from itertools import combinations

from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    TIMESCALES,
    DailySeries,
    Dimension,
    Trend,
)
from moodlens.domains.mood.domain_logic.sequencer import tail

Values = Sequence[float | int | None]

MIN_CORRELATION_PAIRS = 3
MIN_VOLATILITY_DIFFS = 2
# Mean level change (0-4 scale) that counts as a real trend
TREND_THRESHOLD = 0.25


def _present(values: Values) -> list[float]:
    return [float(v) for v in values if v is not None]


def _mean(values: Values) -> float | None:
    present = _present(values)
    return statistics.fmean(present) if present else None


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

def correlation(x: Values, y: Values) -> float | None:
    """Pearson correlation over the days where both series are present.

    Returns None for fewer than 3 paired samples or a zero-variance side.
    Symmetric in its arguments and clamped to [-1, 1].
    """
    if len(x) != len(y):
        raise ValueError(f"Series lengths differ: {len(x)} != {len(y)}")

    pairs = [(float(a), float(b)) for a, b in zip(x, y) if a is not None and b is not None]
    if len(pairs) < MIN_CORRELATION_PAIRS:
        return None

    mean_x = math.fsum(a for a, _ in pairs) / len(pairs)
    mean_y = math.fsum(b for _, b in pairs) / len(pairs)
    sxx = math.fsum((a - mean_x) ** 2 for a, _ in pairs)
    syy = math.fsum((b - mean_y) ** 2 for _, b in pairs)
    if sxx == 0 or syy == 0:
        return None
    sxy = math.fsum((a - mean_x) * (b - mean_y) for a, b in pairs)
    r = sxy / math.sqrt(sxx * syy)
    return max(-1.0, min(1.0, r))


def correlation_matrix(series: DailySeries) -> dict[tuple[Dimension, Dimension], float | None]:
    """Correlation between every ordered pair of EDAI dimensions."""
    matrix: dict[tuple[Dimension, Dimension], float | None] = {}
    for a in DIMENSIONS:
        matrix[(a, a)] = correlation(series.values(a), series.values(a))
    for a, b in combinations(DIMENSIONS, 2):
        r = correlation(series.values(a), series.values(b))
        matrix[(a, b)] = r
        matrix[(b, a)] = r
    return matrix


def health_correlations(
    series: DailySeries,
    health_series: dict[str, Values],
) -> dict[tuple[str, Dimension], float | None]:
    """Correlation of each aligned health metric with each mood dimension."""
    return {
        (metric, dim): correlation(values, series.values(dim))
        for metric, values in health_series.items()
        for dim in DIMENSIONS
    }


# ---------------------------------------------------------------------------
# Volatility
# ---------------------------------------------------------------------------

def volatility(values: Values, window: int) -> tuple[float | None, ...]:
    """Rolling instability: sample std dev of adjacent-day differences.

    For day ``d`` the window covers days ``d-window+1 .. d``; a difference
    is valid when both adjacent days inside the window are present.
    """
    if window < 1:
        raise ValueError("window must be >= 1")

    # diffs[i] = values[i] - values[i-1], or None
    diffs: list[float | None] = [None]
    for prev, cur in zip(values, values[1:]):
        diffs.append(None if prev is None or cur is None else float(cur) - float(prev))

    out: list[float | None] = []
    for d in range(len(values)):
        # diff i needs day i-1 in the window too
        lo = max(d - window + 2, 1)
        window_diffs = _present(diffs[lo:d + 1])
        if len(window_diffs) < MIN_VOLATILITY_DIFFS:
            out.append(None)
        else:
            out.append(statistics.stdev(window_diffs))
    return tuple(out)


# ---------------------------------------------------------------------------
# Averages
# ---------------------------------------------------------------------------

def sliding_average(values: Values, window: int) -> tuple[float | None, ...]:
    """Trailing mean of present values over ``window`` calendar days.

    >>> [round(v, 3) for v in sliding_average([2, 2, 2, 3, 3], 3)]
    [2.0, 2.0, 2.0, 2.333, 2.667]
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    return tuple(_mean(values[max(d - window + 1, 0):d + 1]) for d in range(len(values)))


def expanding_average(values: Values) -> tuple[float | None, ...]:
    """Whole-history running mean up to and including each day."""
    out: list[float | None] = []
    total = 0.0
    count = 0
    for v in values:
        if v is not None:
            total += float(v)
            count += 1
        out.append(total / count if count else None)
    return tuple(out)


def average_levels(series: DailySeries, days: int | None = None) -> dict[Dimension, float | None]:
    """Mean level per dimension over the trailing ``days`` (None = all)."""
    window = tail(series, days)
    return {d: _mean(window.values(d)) for d in DIMENSIONS}


def average_mood_by_timescale(series: DailySeries) -> dict[str, dict[Dimension, float | None]]:
    return {name: average_levels(series, days) for name, days in TIMESCALES.items()}


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------

def classify_trend(values: Values, window: int) -> Trend | None:
    """Compare the last ``window`` days against the ``window`` days before.

    Returns None when either window has no present values.
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    n = len(values)
    recent = _mean(values[max(n - window, 0):])
    previous = _mean(values[max(n - 2 * window, 0):max(n - window, 0)])
    if recent is None or previous is None:
        return None
    diff = recent - previous
    if abs(diff) <= TREND_THRESHOLD:
        return Trend.STABLE
    return Trend.UP if diff > 0 else Trend.DOWN
