"""Shared test fixtures for moodlens tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep a developer's .env or shell config from leaking into tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OBSERVATIONS_EXPORT_PATH", "")
    monkeypatch.setenv("CATEGORY_REGISTRY_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from moodlens.domains.mood.domain_logic.models import (  # noqa: E402
    Observation,
    ObservationKind,
)
from moodlens.domains.mood.domain_logic.registry import (  # noqa: E402
    CategoryDefinition,
    CategoryRegistry,
)
from moodlens.domains.mood.domain_logic.snapshot import AnalysisSettings  # noqa: E402

BASE_TIME = datetime(2026, 3, 1, 21, 0)


def make_mood(
    day: int,
    levels: tuple[int | None, ...] = (1, 1, 1, 1),
    *,
    hour: int = 21,
    id: str | None = None,
    symptoms: set[str] | None = None,
    activities: set[str] | None = None,
    social: set[str] | None = None,
    text: str = "",
) -> Observation:
    """Create a mood observation ``day`` days after BASE_TIME's date."""
    return Observation(
        id=id or f"mood-{day}-{hour}",
        timestamp=BASE_TIME.replace(hour=hour) + timedelta(days=day),
        kind=ObservationKind.MOOD,
        levels=levels,
        symptoms=frozenset(symptoms or ()),
        activities=frozenset(activities or ()),
        social=frozenset(social or ()),
        text=text,
    )


def make_event(day: int, label: str, *, id: str | None = None) -> Observation:
    return Observation(
        id=id or f"event-{day}",
        timestamp=BASE_TIME.replace(hour=9) + timedelta(days=day),
        kind=ObservationKind.EVENT,
        event_label=label,
    )


@pytest.fixture
def registry() -> CategoryRegistry:
    """A small registry with one hidden activity."""
    return CategoryRegistry(
        symptoms=(CategoryDefinition("low_energy"), CategoryDefinition("panic")),
        activities=(
            CategoryDefinition("walking"),
            CategoryDefinition("work"),
            CategoryDefinition("nap", visible=False),
        ),
        social=(CategoryDefinition("friends"),),
    )


@pytest.fixture
def analysis_settings(registry: CategoryRegistry) -> AnalysisSettings:
    return AnalysisSettings(
        registry=registry,
        sliding_windows=(3, 7),
        trend_windows=(7,),
        volatility_window=5,
        butterfly_short_window=2,
        butterfly_long_window=5,
        influence_min_samples=2,
    )


@pytest.fixture
def month_of_moods() -> list[Observation]:
    """30 days of moods: walking every third day lifts elevation, #deadline on day 20."""
    observations = []
    for day in range(30):
        walking = day % 3 == 0
        anxiety = 3 if day in (19, 20, 21) else 1
        observations.append(make_mood(
            day,
            (3 if walking else 1, 2 if day < 15 else 1, anxiety, 1),
            activities={"walking"} if walking else {"work"},
            social={"friends"} if day % 5 == 0 else set(),
            text="Due tomorrow #deadline" if day == 20 else "",
        ))
    observations.append(make_event(10, "Started new medication"))
    return observations


@pytest.fixture
def orchestrator(analysis_settings: AnalysisSettings):
    from moodlens.core.processing.orchestrator import ProcessingOrchestrator

    orch = ProcessingOrchestrator(analysis_settings, max_workers=4)
    yield orch
    orch.shutdown()
