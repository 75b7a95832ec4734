"""Mood observation models, derived series and analysis result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

class Dimension(str, Enum):
    """The four EDAI mood dimensions, each scored 0-4."""

    ELEVATION = "elevation"
    DEPRESSION = "depression"
    ANXIETY = "anxiety"
    IRRITABILITY = "irritability"


DIMENSIONS: tuple[Dimension, ...] = tuple(Dimension)

LEVEL_MIN = 0
LEVEL_MAX = 4


def local_naive(timestamp: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive ones pass through."""
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone().replace(tzinfo=None)


class ObservationKind(str, Enum):
    MOOD = "mood"
    NOTE = "note"
    EVENT = "event"
    MEDIA = "media"
    QUOTE = "quote"
    CUSTOM = "custom"


class CategoryGroup(str, Enum):
    SYMPTOM = "symptom"
    ACTIVITY = "activity"
    SOCIAL = "social"
    HASHTAG = "hashtag"


HEALTH_METRICS = (
    "weight",
    "sleep_hours",
    "distance",
    "active_energy",
    "menstrual_flow",
)

# Timescales offered by the insights view (days; None = whole history)
TIMESCALES: dict[str, int | None] = {
    "month": 30,
    "three_months": 90,
    "six_months": 180,
    "year": 365,
    "all": None,
}


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, order=True)
class Category:
    """A categorical flag: a registry label or a hashtag."""

    group: CategoryGroup
    label: str

    @property
    def key(self) -> str:
        return f"{self.group.value}:{self.label}"


@dataclass(frozen=True)
class Observation:
    """A single logged entry.

    ``levels`` holds one value per EDAI dimension (in ``DIMENSIONS`` order)
    and is only meaningful for ``kind == MOOD``. Flag sets hold registry
    labels rather than positional booleans.
    """

    id: str
    timestamp: datetime | None
    kind: ObservationKind = ObservationKind.MOOD
    levels: tuple[int | None, ...] = (None, None, None, None)
    symptoms: frozenset[str] = frozenset()
    activities: frozenset[str] = frozenset()
    social: frozenset[str] = frozenset()
    text: str = ""
    event_label: str = ""

    def level(self, dimension: Dimension) -> int | None:
        return self.levels[DIMENSIONS.index(dimension)]

    def flags(self, group: CategoryGroup) -> frozenset[str]:
        if group is CategoryGroup.SYMPTOM:
            return self.symptoms
        if group is CategoryGroup.ACTIVITY:
            return self.activities
        if group is CategoryGroup.SOCIAL:
            return self.social
        return frozenset()


@dataclass(frozen=True)
class HealthObservation:
    """Auxiliary health measurements for one point in time."""

    timestamp: datetime | None
    weight: float | None = None
    sleep_hours: float | None = None
    distance: float | None = None
    active_energy: float | None = None
    menstrual_flow: float | None = None

    def metric(self, name: str) -> float | None:
        return getattr(self, name)


# ---------------------------------------------------------------------------
# Derived series
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailySeries:
    """Gapless calendar of days with optional per-dimension mood levels.

    ``levels[dim][i]`` and ``flags[i]`` describe ``dates[i]``. An empty
    series (no mood observations) is a valid "no data" value.
    """

    dates: tuple[date, ...] = ()
    levels: dict[Dimension, tuple[int | None, ...]] = field(
        default_factory=lambda: {d: () for d in DIMENSIONS}
    )
    flags: tuple[frozenset[Category], ...] = ()

    def __len__(self) -> int:
        return len(self.dates)

    @property
    def is_empty(self) -> bool:
        return not self.dates

    @property
    def start(self) -> date | None:
        return self.dates[0] if self.dates else None

    @property
    def end(self) -> date | None:
        return self.dates[-1] if self.dates else None

    def values(self, dimension: Dimension) -> tuple[int | None, ...]:
        return self.levels[dimension]

    def index_of(self, day: date) -> int | None:
        """Position of ``day`` in the series, or None if outside the range."""
        if not self.dates or day < self.dates[0] or day > self.dates[-1]:
            return None
        return (day - self.dates[0]).days

    def categories(self, group: CategoryGroup) -> list[Category]:
        """Every category of ``group`` active on at least one day, sorted."""
        seen = {c for day in self.flags for c in day if c.group is group}
        return sorted(seen)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InfluenceResult:
    """Mean mood with vs without a flag, for one category and dimension."""

    mean_with: float | None
    mean_without: float | None
    delta: float | None
    sample_size_with: int
    sample_size_without: int

    @property
    def sufficient(self) -> bool:
        return self.delta is not None


@dataclass(frozen=True)
class WindowMeans:
    pre_short: float | None = None
    post_short: float | None = None
    pre_long: float | None = None
    post_long: float | None = None

    @property
    def short_change(self) -> float | None:
        if self.pre_short is None or self.post_short is None:
            return None
        return self.post_short - self.pre_short

    @property
    def long_change(self) -> float | None:
        if self.pre_long is None or self.post_long is None:
            return None
        return self.post_long - self.pre_long


@dataclass(frozen=True)
class EventWindowResult:
    """Before/after window means around one event occurrence."""

    occurrence_id: str
    label: str
    source: str  # 'event' | 'hashtag'
    day: date
    windows: dict[Dimension, WindowMeans]


@dataclass(frozen=True)
class EventSummary:
    """Average effect across every occurrence of one event label or hashtag."""

    label: str
    source: str
    occurrences: int
    windows: dict[Dimension, WindowMeans]


@dataclass(frozen=True)
class ProcessedResult:
    """Everything one analysis run derives from a snapshot.

    Published by the orchestrator only once every part is present.
    """

    daily_series: DailySeries
    health_series: dict[str, tuple[float | None, ...]]
    sliding_averages: dict[int, dict[Dimension, tuple[float | None, ...]]]
    expanding_average: dict[Dimension, tuple[float | None, ...]]
    average_mood: dict[str, dict[Dimension, float | None]]
    volatility: dict[Dimension, tuple[float | None, ...]]
    trends: dict[int, dict[Dimension, Trend | None]]
    correlations: dict[tuple[Dimension, Dimension], float | None]
    health_correlations: dict[tuple[str, Dimension], float | None]
    influences: dict[CategoryGroup, dict[str, dict[Dimension, InfluenceResult]]]
    event_windows: tuple[EventWindowResult, ...]
    event_summaries: dict[tuple[str, str], EventSummary]
    hashtags: dict[str, int]
    tallies: dict[str, dict[CategoryGroup, dict[str, int]]]

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation (dates as ISO strings, enums as values)."""
        series = self.daily_series
        return {
            "daily_series": {
                "dates": [d.isoformat() for d in series.dates],
                "levels": {d.value: list(v) for d, v in series.levels.items()},
                "flags": [sorted(c.key for c in day) for day in series.flags],
            },
            "health_series": {m: list(v) for m, v in self.health_series.items()},
            "sliding_averages": {
                str(w): _dims(values, list) for w, values in self.sliding_averages.items()
            },
            "expanding_average": _dims(self.expanding_average, list),
            "average_mood": {
                scale: _dims(values) for scale, values in self.average_mood.items()
            },
            "volatility": _dims(self.volatility, list),
            "trends": {
                str(w): {d.value: (t.value if t else None) for d, t in values.items()}
                for w, values in self.trends.items()
            },
            "correlations": {
                f"{a.value}/{b.value}": r for (a, b), r in self.correlations.items()
            },
            "health_correlations": {
                f"{metric}/{dim.value}": r
                for (metric, dim), r in self.health_correlations.items()
            },
            "influences": {
                group.value: {
                    label: {d.value: _influence_dict(r) for d, r in per_dim.items()}
                    for label, per_dim in by_label.items()
                }
                for group, by_label in self.influences.items()
            },
            "event_windows": [
                {
                    "occurrence_id": e.occurrence_id,
                    "label": e.label,
                    "source": e.source,
                    "date": e.day.isoformat(),
                    "windows": _dims(e.windows, _window_dict),
                }
                for e in self.event_windows
            ],
            "event_summaries": [
                {
                    "label": s.label,
                    "source": s.source,
                    "occurrences": s.occurrences,
                    "windows": _dims(s.windows, _window_dict),
                }
                for s in self.event_summaries.values()
            ],
            "hashtags": dict(self.hashtags),
            "tallies": {
                scale: {g.value: dict(counts) for g, counts in groups.items()}
                for scale, groups in self.tallies.items()
            },
        }


def _dims(values: dict[Dimension, Any], convert=None) -> dict[str, Any]:
    if convert is None:
        return {d.value: v for d, v in values.items()}
    return {d.value: convert(v) for d, v in values.items()}


def _influence_dict(r: InfluenceResult) -> dict[str, Any]:
    return {
        "mean_with": r.mean_with,
        "mean_without": r.mean_without,
        "delta": r.delta,
        "sample_size_with": r.sample_size_with,
        "sample_size_without": r.sample_size_without,
    }


def _window_dict(w: WindowMeans) -> dict[str, float | None]:
    return {
        "pre_short": w.pre_short,
        "post_short": w.post_short,
        "pre_long": w.pre_long,
        "post_long": w.post_long,
    }
