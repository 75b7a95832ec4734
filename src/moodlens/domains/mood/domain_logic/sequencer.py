"""Daily sequencing — turns irregular observations into a gapless calendar.

Same-day policy: for each dimension the latest mood observation of the day
wins. Days without any mood observation keep ``None`` levels.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timedelta

from moodlens.domains.mood.domain_logic.hashtags import extract_hashtags
from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    HEALTH_METRICS,
    Category,
    CategoryGroup,
    DailySeries,
    Dimension,
    HealthObservation,
    Observation,
    ObservationKind,
)

logger = logging.getLogger(__name__)

_FLAG_GROUPS = (CategoryGroup.SYMPTOM, CategoryGroup.ACTIVITY, CategoryGroup.SOCIAL)


def build_daily_series(observations: Sequence[Observation]) -> DailySeries:
    """Build the calendar-indexed series spanning the mood observations.

    Args:
        observations: Snapshot observations, sorted by timestamp.

    Returns:
        A DailySeries over ``[first mood day, last mood day]``; empty when
        there are no mood observations.
    """
    moods = [o for o in observations if o.kind is ObservationKind.MOOD]
    if not moods:
        return DailySeries()

    start = min(o.timestamp.date() for o in moods)
    end = max(o.timestamp.date() for o in moods)
    length = (end - start).days + 1
    dates = tuple(start + timedelta(days=i) for i in range(length))

    levels: dict[Dimension, list[int | None]] = {d: [None] * length for d in DIMENSIONS}
    flags: list[set[Category]] = [set() for _ in range(length)]

    # Sorted input: later assignments overwrite earlier ones on the same day
    for obs in sorted(observations, key=lambda o: o.timestamp):
        day = obs.timestamp.date()
        if day < start or day > end:
            continue
        i = (day - start).days
        if obs.kind is ObservationKind.MOOD:
            for dim in DIMENSIONS:
                value = obs.level(dim)
                if value is not None:
                    levels[dim][i] = value
        for group in _FLAG_GROUPS:
            flags[i].update(Category(group, label) for label in obs.flags(group))
        for tag in extract_hashtags(obs.text):
            flags[i].add(Category(CategoryGroup.HASHTAG, tag))

    logger.debug("Sequenced %d mood observations into %d days", len(moods), length)
    return DailySeries(
        dates=dates,
        levels={d: tuple(v) for d, v in levels.items()},
        flags=tuple(frozenset(f) for f in flags),
    )


def build_health_series(
    health_observations: Sequence[HealthObservation],
    series: DailySeries,
) -> dict[str, tuple[float | None, ...]]:
    """Align each health metric to the series calendar.

    A later record for the same day and metric replaces an earlier one.
    Metrics with no value inside the range are omitted.
    """
    if series.is_empty:
        return {}

    aligned: dict[str, list[float | None]] = {m: [None] * len(series) for m in HEALTH_METRICS}
    for rec in sorted(health_observations, key=lambda h: h.timestamp):
        i = series.index_of(rec.timestamp.date())
        if i is None:
            continue
        for metric in HEALTH_METRICS:
            value = rec.metric(metric)
            if value is not None:
                aligned[metric][i] = float(value)

    return {
        metric: tuple(values)
        for metric, values in aligned.items()
        if any(v is not None for v in values)
    }


def tail(series: DailySeries, days: int | None) -> DailySeries:
    """The trailing ``days`` calendar days of ``series`` (all of it for None)."""
    if days is None or days >= len(series):
        return series
    if days <= 0:
        return DailySeries()
    return DailySeries(
        dates=series.dates[-days:],
        levels={d: v[-days:] for d, v in series.levels.items()},
        flags=series.flags[-days:],
    )


def day_range(series: DailySeries, first: date, last: date) -> range:
    """Indices of the series days within ``[first, last]`` (clipped)."""
    if series.is_empty or last < first:
        return range(0)
    lo = max((first - series.dates[0]).days, 0)
    hi = min((last - series.dates[0]).days, len(series) - 1)
    return range(lo, hi + 1) if lo <= hi else range(0)
