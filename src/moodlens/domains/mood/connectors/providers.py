"""Concrete ObservationProvider implementations."""

from __future__ import annotations

from collections.abc import Iterable

from moodlens.domains.mood.connectors.mock_data import (
    get_sample_health_observations,
    get_sample_observations,
)
from moodlens.domains.mood.domain_logic.models import HealthObservation, Observation


class SampleObservationProvider:
    """Uses deterministic sample data. Always available."""

    def load_observations(self) -> list[Observation]:
        return get_sample_observations()

    def load_health_observations(self) -> list[HealthObservation]:
        return get_sample_health_observations()

    def is_connected(self) -> bool:
        return False

    @property
    def data_source(self) -> str:
        return "sample"


class StaticObservationProvider:
    """Serves fixed in-memory lists, e.g. records handed over by a host app."""

    def __init__(
        self,
        observations: Iterable[Observation] = (),
        health_observations: Iterable[HealthObservation] = (),
    ) -> None:
        self._observations = list(observations)
        self._health = list(health_observations)

    def load_observations(self) -> list[Observation]:
        return list(self._observations)

    def load_health_observations(self) -> list[HealthObservation]:
        return list(self._health)

    def is_connected(self) -> bool:
        return True

    @property
    def data_source(self) -> str:
        return "static"
