"""Event impact ("butterfly") analysis.

For each event occurrence, compares mean mood in short and long windows
before and after the event day:

    pre  = [day - W, day - 1]
    post = [day + 1, day + W]

The event day itself belongs to neither window.
"""

from __future__ import annotations

import logging
import statistics
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from moodlens.domains.mood.domain_logic.hashtags import extract_hashtags
from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    DailySeries,
    Dimension,
    EventSummary,
    EventWindowResult,
    Observation,
    ObservationKind,
    WindowMeans,
)
from moodlens.domains.mood.domain_logic.sequencer import day_range

logger = logging.getLogger(__name__)

SOURCE_EVENT = "event"
SOURCE_HASHTAG = "hashtag"


@dataclass(frozen=True)
class EventOccurrence:
    occurrence_id: str
    label: str
    source: str
    day: date


def find_occurrences(observations: Sequence[Observation]) -> list[EventOccurrence]:
    """Explicit event entries plus every hashtag occurrence in any text."""
    found: list[EventOccurrence] = []
    for obs in observations:
        day = obs.timestamp.date()
        if obs.kind is ObservationKind.EVENT:
            label = (obs.event_label or obs.text).strip()
            if label:
                found.append(EventOccurrence(obs.id, label, SOURCE_EVENT, day))
            else:
                logger.debug("Event observation %s has no label; skipped", obs.id)
        for tag in sorted(extract_hashtags(obs.text)):
            found.append(EventOccurrence(f"{obs.id}#{tag}", f"#{tag}", SOURCE_HASHTAG, day))
    return found


def window_mean(series: DailySeries, dimension: Dimension, first: date, last: date) -> float | None:
    """Mean of the present levels for days in ``[first, last]``."""
    values = series.values(dimension)
    present = [values[i] for i in day_range(series, first, last) if values[i] is not None]
    return statistics.fmean(present) if present else None


def event_windows(
    series: DailySeries,
    day: date,
    short_window: int,
    long_window: int,
) -> dict[Dimension, WindowMeans]:
    one = timedelta(days=1)
    short = timedelta(days=short_window)
    long = timedelta(days=long_window)
    return {
        dim: WindowMeans(
            pre_short=window_mean(series, dim, day - short, day - one),
            post_short=window_mean(series, dim, day + one, day + short),
            pre_long=window_mean(series, dim, day - long, day - one),
            post_long=window_mean(series, dim, day + one, day + long),
        )
        for dim in DIMENSIONS
    }


def analyze_events(
    series: DailySeries,
    observations: Sequence[Observation],
    *,
    short_window: int = 7,
    long_window: int = 28,
) -> tuple[EventWindowResult, ...]:
    """Window means around every event and hashtag occurrence."""
    results = tuple(
        EventWindowResult(
            occurrence_id=occ.occurrence_id,
            label=occ.label,
            source=occ.source,
            day=occ.day,
            windows=event_windows(series, occ.day, short_window, long_window),
        )
        for occ in find_occurrences(observations)
    )
    logger.debug("Computed event windows for %d occurrences", len(results))
    return results


def summarize_events(
    results: Sequence[EventWindowResult],
) -> dict[tuple[str, str], EventSummary]:
    """Average effect per (source, label), using only the present per-occurrence means.

    An explicit event labelled ``#deadline`` and the hashtag ``#deadline``
    are summarized separately.
    """
    by_key: dict[tuple[str, str], list[EventWindowResult]] = defaultdict(list)
    for result in results:
        by_key[(result.source, result.label)].append(result)

    summaries: dict[tuple[str, str], EventSummary] = {}
    for source, label in sorted(by_key):
        group = by_key[(source, label)]
        windows = {
            dim: WindowMeans(
                pre_short=_mean_of(w.windows[dim].pre_short for w in group),
                post_short=_mean_of(w.windows[dim].post_short for w in group),
                pre_long=_mean_of(w.windows[dim].pre_long for w in group),
                post_long=_mean_of(w.windows[dim].post_long for w in group),
            )
            for dim in DIMENSIONS
        }
        summaries[(source, label)] = EventSummary(
            label=label,
            source=source,
            occurrences=len(group),
            windows=windows,
        )
    return summaries


def _mean_of(values) -> float | None:
    present = [v for v in values if v is not None]
    return statistics.fmean(present) if present else None
