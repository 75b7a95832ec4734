"""Immutable processing snapshot — the only input an analysis run reads.

A snapshot is captured once when a run starts. It owns tuple copies of the
observation lists and the resolved analysis settings, so worker threads can
read it freely without locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from moodlens.domains.mood.domain_logic.models import (
    LEVEL_MAX,
    LEVEL_MIN,
    CategoryGroup,
    HealthObservation,
    Observation,
    ObservationKind,
    local_naive,
)
from moodlens.domains.mood.domain_logic.registry import CategoryRegistry, load_registry

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """Raised when a run is started with inputs that break the snapshot contract."""


@dataclass(frozen=True)
class AnalysisSettings:
    """Window lengths and thresholds resolved for one run.

    The registry defaults to the packaged category list; labels it does not
    know are dropped at snapshot capture.
    """

    registry: CategoryRegistry = field(default_factory=load_registry)
    sliding_windows: tuple[int, ...] = (30, 90, 180)
    trend_windows: tuple[int, ...] = (7, 30, 90)
    volatility_window: int = 14
    butterfly_short_window: int = 7
    butterfly_long_window: int = 28
    influence_min_samples: int = 3

    def validate(self) -> None:
        """Raise SnapshotError if any window or threshold is unusable."""
        windows = {
            "sliding_windows": self.sliding_windows,
            "trend_windows": self.trend_windows,
            "volatility_window": (self.volatility_window,),
            "butterfly_short_window": (self.butterfly_short_window,),
            "butterfly_long_window": (self.butterfly_long_window,),
        }
        for name, values in windows.items():
            for value in values:
                if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                    raise SnapshotError(f"{name} must be positive integers, got {value!r}")
        if self.influence_min_samples < 1:
            raise SnapshotError(
                f"influence_min_samples must be >= 1, got {self.influence_min_samples!r}"
            )
        if not isinstance(self.registry, CategoryRegistry):
            raise SnapshotError("registry must be a CategoryRegistry")


@dataclass(frozen=True)
class ProcessingSnapshot:
    observations: tuple[Observation, ...]
    health_observations: tuple[HealthObservation, ...]
    settings: AnalysisSettings
    captured_at: datetime
    skipped_records: int = 0


def capture_snapshot(
    observations: Iterable[Observation],
    health_observations: Iterable[HealthObservation] = (),
    settings: AnalysisSettings | None = None,
) -> ProcessingSnapshot:
    """Copy the inputs into an immutable snapshot.

    Malformed records (no timestamp, mood entries with out-of-range levels)
    are skipped and counted. Flag labels the registry does not know are
    dropped from the copy, and aware timestamps become naive local time.

    Raises:
        SnapshotError: If an entry is not an Observation/HealthObservation or
            the settings are invalid. These are integration bugs, not data
            conditions.
    """
    settings = settings or AnalysisSettings()
    settings.validate()

    if isinstance(observations, (str, bytes)) or not isinstance(observations, Iterable):
        raise SnapshotError("observations must be an iterable of Observation")

    kept: list[Observation] = []
    skipped = 0
    for obs in observations:
        if not isinstance(obs, Observation):
            raise SnapshotError(f"Expected Observation, got {type(obs).__name__}")
        if not _is_well_formed(obs):
            skipped += 1
            continue
        kept.append(_restrict_flags(_with_local_time(obs), settings.registry))

    health: list[HealthObservation] = []
    for rec in health_observations:
        if not isinstance(rec, HealthObservation):
            raise SnapshotError(f"Expected HealthObservation, got {type(rec).__name__}")
        if rec.timestamp is None:
            skipped += 1
            continue
        health.append(_with_local_time(rec))

    if skipped:
        logger.warning("Skipped %d malformed record(s) while capturing snapshot", skipped)

    # Stable order: by timestamp, then id, so identical inputs give identical runs
    kept.sort(key=lambda o: (o.timestamp, o.id))
    health.sort(key=lambda h: h.timestamp)

    return ProcessingSnapshot(
        observations=tuple(kept),
        health_observations=tuple(health),
        settings=settings,
        captured_at=datetime.now(),
        skipped_records=skipped,
    )


def _is_well_formed(obs: Observation) -> bool:
    if not isinstance(obs.timestamp, datetime):
        return False
    if obs.kind is ObservationKind.MOOD:
        if len(obs.levels) != 4:
            return False
        for value in obs.levels:
            if value is not None and not (LEVEL_MIN <= value <= LEVEL_MAX):
                return False
    return True


def _with_local_time(record):
    if not isinstance(record.timestamp, datetime) or record.timestamp.tzinfo is None:
        return record
    return replace(record, timestamp=local_naive(record.timestamp))


def _restrict_flags(obs: Observation, registry: CategoryRegistry) -> Observation:
    changes = {}
    for group, attr in (
        (CategoryGroup.SYMPTOM, "symptoms"),
        (CategoryGroup.ACTIVITY, "activities"),
        (CategoryGroup.SOCIAL, "social"),
    ):
        flags = obs.flags(group)
        known = flags & registry.labels(group)
        if known != flags:
            logger.debug(
                "Dropping unknown %s labels %s on observation %s",
                group.value,
                sorted(flags - known),
                obs.id,
            )
            changes[attr] = frozenset(known)
    return replace(obs, **changes) if changes else obs
