"""Observation connectors — abstraction layer over the record store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from moodlens.domains.mood.domain_logic.models import HealthObservation, Observation


@runtime_checkable
class ObservationProvider(Protocol):
    """Read-only source of already-collected observations.

    The analysis engine never writes through a provider; it copies what the
    provider returns into a processing snapshot.
    """

    def load_observations(self) -> list[Observation]:
        """Mood, note, event, media, quote and custom entries."""
        ...

    def load_health_observations(self) -> list[HealthObservation]:
        """Daily health measurements (weight, sleep, distance, ...)."""
        ...

    def is_connected(self) -> bool:
        """Whether real user data is available."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active source: 'json_export', 'static' or 'sample'."""
        ...
