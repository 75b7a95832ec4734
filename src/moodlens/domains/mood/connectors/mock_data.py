"""Deterministic sample data for development and demos.

The sample user logs a mood most days (some gaps), walks on weekends,
has a recurring "#deadline" tag with elevated anxiety around it, and
records one explicit event. Nothing here is random: the same call always
yields the same records.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from moodlens.domains.mood.domain_logic.models import (
    HealthObservation,
    Observation,
    ObservationKind,
)

SAMPLE_START = datetime(2026, 1, 1, 20, 0)
SAMPLE_DAYS = 120


def get_sample_observations(days: int = SAMPLE_DAYS) -> list[Observation]:
    """Return sample observations covering ``days`` days."""
    observations: list[Observation] = []
    for i in range(days):
        ts = SAMPLE_START + timedelta(days=i)
        if i % 9 == 4:  # skipped day
            continue

        deadline = i % 21 in (13, 14)
        weekend = ts.weekday() >= 5
        elevation = 1 + (i // 30) % 2
        depression = 2 if i < 45 else 1
        anxiety = 3 if deadline else (1 if weekend else 2)
        irritability = 2 if deadline else 1

        text = "Crunch time #deadline" if deadline else ""
        observations.append(Observation(
            id=f"sample-{i:03d}",
            timestamp=ts,
            kind=ObservationKind.MOOD,
            levels=(elevation, depression, anxiety, irritability),
            symptoms=frozenset({"racing_thoughts"} if deadline else set()),
            activities=frozenset({"walking"} if weekend else {"work"}),
            social=frozenset({"friends"} if weekend else {"colleagues"}),
            text=text,
        ))

    observations.append(Observation(
        id="sample-event-001",
        timestamp=SAMPLE_START + timedelta(days=45, hours=-10),
        kind=ObservationKind.EVENT,
        event_label="Started therapy",
    ))
    observations.append(Observation(
        id="sample-note-001",
        timestamp=SAMPLE_START + timedelta(days=60, hours=-2),
        kind=ObservationKind.NOTE,
        text="Good chat with an old friend #reconnect",
    ))
    return observations


def get_sample_health_observations(days: int = SAMPLE_DAYS) -> list[HealthObservation]:
    """Return sample health records: nightly sleep and weekly weigh-ins."""
    records: list[HealthObservation] = []
    for i in range(days):
        ts = SAMPLE_START.replace(hour=7) + timedelta(days=i)
        sleep = 7.5 - (1.5 if i % 21 in (13, 14) else 0.0)
        weight = 72.0 - 0.1 * (i // 7) if i % 7 == 0 else None
        records.append(HealthObservation(timestamp=ts, sleep_hours=sleep, weight=weight))
    return records
