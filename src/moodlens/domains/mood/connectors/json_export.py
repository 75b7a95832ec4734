"""JSON export parser and provider.

Export format::

    {
      "observations": [
        {"id": "a1", "timestamp": "2026-01-04T21:30:00", "kind": "mood",
         "levels": {"elevation": 1, "depression": 2, "anxiety": 0, "irritability": 0},
         "symptoms": ["low_energy"], "activities": ["walking"], "social": [],
         "text": "Slow day #rain"},
        {"id": "e1", "timestamp": "2026-01-05T09:00:00", "kind": "event",
         "event_label": "Started new medication"}
      ],
      "health": [
        {"timestamp": "2026-01-04", "sleep_hours": 6.5, "weight": 71.2}
      ]
    }

``levels`` may also be a 4-item list in EDAI order. Malformed records are
skipped and counted; they never abort an import.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from moodlens.domains.mood.domain_logic.models import (
    DIMENSIONS,
    HEALTH_METRICS,
    LEVEL_MAX,
    LEVEL_MIN,
    HealthObservation,
    Observation,
    ObservationKind,
    local_naive,
)

logger = logging.getLogger(__name__)


class ObservationParseError(Exception):
    """Raised when an export file or a single record cannot be parsed."""


@dataclass(frozen=True)
class ParsedRecords:
    observations: list[Observation]
    health_observations: list[HealthObservation]
    skipped: int = 0


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise ObservationParseError(f"Missing or non-string timestamp: {value!r}")
    try:
        # Zulu and offset times become naive local time
        return local_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        # Date-only values (common for health records) mean midnight
        return datetime.combine(date.fromisoformat(value), datetime.min.time())
    except ValueError as exc:
        raise ObservationParseError(f"Invalid timestamp: {value!r}") from exc


def _parse_level(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ObservationParseError(f"Mood level must be an integer: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ObservationParseError(f"Mood level must be an integer: {value!r}")
    level = int(value)
    if not LEVEL_MIN <= level <= LEVEL_MAX:
        raise ObservationParseError(f"Mood level out of range: {level}")
    return level


def _parse_levels(raw: Any) -> tuple[int | None, ...]:
    if isinstance(raw, dict):
        return tuple(_parse_level(raw.get(d.value)) for d in DIMENSIONS)
    if isinstance(raw, list) and len(raw) == len(DIMENSIONS):
        return tuple(_parse_level(v) for v in raw)
    raise ObservationParseError(f"levels must be a mapping or a 4-item list: {raw!r}")


def _parse_labels(raw: Any, name: str) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
        raise ObservationParseError(f"{name} must be a list of strings")
    return frozenset(v.strip() for v in raw if v.strip())


def parse_observation(record: dict[str, Any], *, fallback_id: str = "") -> Observation:
    """Convert one exported record into an Observation.

    Raises:
        ObservationParseError: If the record is malformed.
    """
    if not isinstance(record, dict):
        raise ObservationParseError(f"Record must be an object, got {type(record).__name__}")

    try:
        kind = ObservationKind(record.get("kind", "mood"))
    except ValueError as exc:
        raise ObservationParseError(f"Unknown kind: {record.get('kind')!r}") from exc

    levels: tuple[int | None, ...] = (None,) * len(DIMENSIONS)
    if kind is ObservationKind.MOOD:
        levels = _parse_levels(record.get("levels"))

    obs_id = str(record.get("id") or fallback_id)
    if not obs_id:
        raise ObservationParseError("Record has no id")

    return Observation(
        id=obs_id,
        timestamp=_parse_timestamp(record.get("timestamp")),
        kind=kind,
        levels=levels,
        symptoms=_parse_labels(record.get("symptoms"), "symptoms"),
        activities=_parse_labels(record.get("activities"), "activities"),
        social=_parse_labels(record.get("social"), "social"),
        text=str(record.get("text") or ""),
        event_label=str(record.get("event_label") or ""),
    )


def parse_health_observation(record: dict[str, Any]) -> HealthObservation:
    """Convert one exported health record.

    Raises:
        ObservationParseError: If the record is malformed.
    """
    if not isinstance(record, dict):
        raise ObservationParseError(f"Record must be an object, got {type(record).__name__}")

    metrics: dict[str, float | None] = {}
    for metric in HEALTH_METRICS:
        value = record.get(metric)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ObservationParseError(f"{metric} must be numeric: {value!r}")
        metrics[metric] = float(value)
    return HealthObservation(timestamp=_parse_timestamp(record.get("timestamp")), **metrics)


def parse_records(
    observations: Iterable[dict[str, Any]] = (),
    health: Iterable[dict[str, Any]] = (),
) -> ParsedRecords:
    """Parse raw record dicts, skipping (and counting) malformed ones."""
    parsed: list[Observation] = []
    parsed_health: list[HealthObservation] = []
    skipped = 0

    for i, record in enumerate(observations):
        try:
            parsed.append(parse_observation(record, fallback_id=f"record-{i}"))
        except ObservationParseError as exc:
            skipped += 1
            logger.debug("Skipping observation %d: %s", i, exc)

    for i, record in enumerate(health):
        try:
            parsed_health.append(parse_health_observation(record))
        except ObservationParseError as exc:
            skipped += 1
            logger.debug("Skipping health record %d: %s", i, exc)

    if skipped:
        logger.warning("Skipped %d malformed record(s)", skipped)
    return ParsedRecords(parsed, parsed_health, skipped)


def parse_export_file(path: str | Path) -> ParsedRecords:
    """Read and parse a JSON export file.

    Raises:
        ObservationParseError: If the file is missing or not a valid export.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ObservationParseError(f"Export file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ObservationParseError(f"Cannot read export {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ObservationParseError("Export root must be an object")

    observations = data.get("observations", [])
    health = data.get("health", [])
    if not isinstance(observations, list) or not isinstance(health, list):
        raise ObservationParseError("'observations' and 'health' must be lists")
    return parse_records(observations, health)


class JsonExportProvider:
    """ObservationProvider backed by a JSON export file.

    The file is parsed lazily and cached; call ``reload()`` after it changes.

    Usage::

        provider = JsonExportProvider("~/mood-export.json")
        if provider.is_connected():
            observations = provider.load_observations()
    """

    def __init__(self, export_path: str | Path) -> None:
        self._export_path = Path(export_path).expanduser() if export_path else None
        self._cache: ParsedRecords | None = None

    def _parse(self) -> ParsedRecords:
        if self._cache is None:
            if self._export_path is None:
                raise ObservationParseError("No export path configured")
            self._cache = parse_export_file(self._export_path)
            logger.info(
                "Parsed export %s: %d observations, %d health records, %d skipped",
                self._export_path,
                len(self._cache.observations),
                len(self._cache.health_observations),
                self._cache.skipped,
            )
        return self._cache

    def reload(self) -> None:
        self._cache = None

    def load_observations(self) -> list[Observation]:
        return list(self._parse().observations)

    def load_health_observations(self) -> list[HealthObservation]:
        return list(self._parse().health_observations)

    def is_connected(self) -> bool:
        return self._export_path is not None and self._export_path.is_file()

    @property
    def data_source(self) -> str:
        return "json_export"
