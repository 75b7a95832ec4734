"""Categorical influence — mean mood with vs without a flag.

Each category is evaluated on its own (no control for co-occurring flags).
A result whose partitions do not both reach the minimum sample count keeps
its sample sizes but reports no means and no delta.
"""

from __future__ import annotations

import statistics

from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    TIMESCALES,
    Category,
    CategoryGroup,
    DailySeries,
    Dimension,
    InfluenceResult,
)
from moodlens.domains.mood.domain_logic.registry import CategoryRegistry
from moodlens.domains.mood.domain_logic.sequencer import tail

DEFAULT_MIN_SAMPLES = 3


def influence(
    series: DailySeries,
    category: Category,
    dimension: Dimension,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> InfluenceResult:
    values = series.values(dimension)
    with_flag: list[int] = []
    without_flag: list[int] = []
    for level, flags in zip(values, series.flags):
        if level is None:
            continue
        (with_flag if category in flags else without_flag).append(level)

    if len(with_flag) < min_samples or len(without_flag) < min_samples:
        return InfluenceResult(None, None, None, len(with_flag), len(without_flag))

    mean_with = statistics.fmean(with_flag)
    mean_without = statistics.fmean(without_flag)
    return InfluenceResult(
        mean_with=mean_with,
        mean_without=mean_without,
        delta=mean_with - mean_without,
        sample_size_with=len(with_flag),
        sample_size_without=len(without_flag),
    )


def analyzed_categories(
    series: DailySeries,
    registry: CategoryRegistry,
    group: CategoryGroup,
) -> list[Category]:
    """Visible registry categories, or every hashtag seen in the series."""
    if group is CategoryGroup.HASHTAG:
        return series.categories(CategoryGroup.HASHTAG)
    return registry.visible(group)


def analyze_group(
    series: DailySeries,
    registry: CategoryRegistry,
    group: CategoryGroup,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> dict[str, dict[Dimension, InfluenceResult]]:
    """Influence of every category in ``group`` on every dimension."""
    return {
        category.label: {
            dim: influence(series, category, dim, min_samples) for dim in DIMENSIONS
        }
        for category in analyzed_categories(series, registry, group)
    }


def tally(
    series: DailySeries,
    registry: CategoryRegistry,
    days: int | None = None,
) -> dict[CategoryGroup, dict[str, int]]:
    """Days each category was active in the trailing ``days`` (None = all).

    Registry groups list every visible category, zero counts included;
    hashtags list only those that occur.
    """
    window = tail(series, days)
    counts: dict[CategoryGroup, dict[str, int]] = {}
    for group in CategoryGroup:
        categories = analyzed_categories(window, registry, group)
        counts[group] = {
            c.label: sum(1 for flags in window.flags if c in flags) for c in categories
        }
    return counts


def tally_by_timescale(
    series: DailySeries,
    registry: CategoryRegistry,
) -> dict[str, dict[CategoryGroup, dict[str, int]]]:
    return {name: tally(series, registry, days) for name, days in TIMESCALES.items()}
