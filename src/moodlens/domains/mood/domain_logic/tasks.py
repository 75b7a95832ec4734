"""Analysis task table run by the processing orchestrator.

The sequencer task runs first; every other task receives its daily series
(read-only) and returns a fragment of ``ProcessedResult`` fields. Task names
double as the ``RunStatus`` completion flags.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from moodlens.domains.mood.domain_logic.butterfly import analyze_events, summarize_events
from moodlens.domains.mood.domain_logic.hashtags import hashtag_index
from moodlens.domains.mood.domain_logic.influence import analyze_group, tally_by_timescale
from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    CategoryGroup,
    DailySeries,
    ProcessedResult,
)
from moodlens.domains.mood.domain_logic.sequencer import build_daily_series, build_health_series
from moodlens.domains.mood.domain_logic.snapshot import ProcessingSnapshot
from moodlens.domains.mood.domain_logic.transforms import (
    average_mood_by_timescale,
    classify_trend,
    correlation_matrix,
    expanding_average,
    health_correlations,
    sliding_average,
    volatility,
)

Fragment = dict[str, Any]
HealthSeries = Mapping[str, tuple[float | None, ...]]
AnalysisTask = Callable[[ProcessingSnapshot, DailySeries, HealthSeries], Fragment]

SEQUENCER_TASK = "daily_series"

# Fields filled by more than one task; their fragments are merged key by key
_MERGED_FIELDS = {"influences"}


def sequence(snapshot: ProcessingSnapshot) -> Fragment:
    series = build_daily_series(snapshot.observations)
    return {
        "daily_series": series,
        "health_series": build_health_series(snapshot.health_observations, series),
    }


def _averages(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    return {
        "sliding_averages": {
            window: {d: sliding_average(series.values(d), window) for d in DIMENSIONS}
            for window in snapshot.settings.sliding_windows
        },
        "expanding_average": {d: expanding_average(series.values(d)) for d in DIMENSIONS},
        "average_mood": average_mood_by_timescale(series),
    }


def _trends(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    return {
        "trends": {
            window: {d: classify_trend(series.values(d), window) for d in DIMENSIONS}
            for window in snapshot.settings.trend_windows
        }
    }


def _volatility(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    window = snapshot.settings.volatility_window
    return {"volatility": {d: volatility(series.values(d), window) for d in DIMENSIONS}}


def _correlations(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    return {
        "correlations": correlation_matrix(series),
        "health_correlations": health_correlations(series, dict(health)),
    }


def _influence_task(group: CategoryGroup) -> AnalysisTask:
    def run(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
        settings = snapshot.settings
        return {
            "influences": {
                group: analyze_group(
                    series, settings.registry, group, settings.influence_min_samples
                )
            }
        }

    run.__name__ = f"_{group.value}_influence"
    return run


def _hashtags(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    fragment = _influence_task(CategoryGroup.HASHTAG)(snapshot, series, health)
    fragment["hashtags"] = hashtag_index(series)
    return fragment


def _events(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    settings = snapshot.settings
    windows = analyze_events(
        series,
        snapshot.observations,
        short_window=settings.butterfly_short_window,
        long_window=settings.butterfly_long_window,
    )
    return {"event_windows": windows, "event_summaries": summarize_events(windows)}


def _tally(snapshot: ProcessingSnapshot, series: DailySeries, health: HealthSeries) -> Fragment:
    return {"tallies": tally_by_timescale(series, snapshot.settings.registry)}


ANALYSIS_TASKS: dict[str, AnalysisTask] = {
    "averages": _averages,
    "trends": _trends,
    "volatility": _volatility,
    "correlations": _correlations,
    "symptoms": _influence_task(CategoryGroup.SYMPTOM),
    "activities": _influence_task(CategoryGroup.ACTIVITY),
    "social": _influence_task(CategoryGroup.SOCIAL),
    "hashtags": _hashtags,
    "events": _events,
    "tally": _tally,
}


def assemble_result(fragments: Mapping[str, Fragment]) -> ProcessedResult:
    """Merge task fragments into one ProcessedResult.

    Raises:
        TypeError: If a ProcessedResult field is missing (a task table bug).
    """
    fields: dict[str, Any] = {}
    # Task order is fixed so the merged dicts iterate deterministically
    for name in sorted(fragments):
        for key, value in fragments[name].items():
            if key in _MERGED_FIELDS:
                fields.setdefault(key, {}).update(value)
            else:
                fields[key] = value
    if "influences" in fields:
        fields["influences"] = {
            g: fields["influences"][g] for g in CategoryGroup if g in fields["influences"]
        }
    return ProcessedResult(**fields)
