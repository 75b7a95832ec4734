"""Category registry — recognized symptom, activity and social labels.

Registries are read from YAML. The packaged default lives under
``src/moodlens/domains/mood/registries/default.yaml``; a user file can
replace it via the ``CATEGORY_REGISTRY_PATH`` setting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from moodlens.domains.mood.domain_logic.models import Category, CategoryGroup

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = (
    Path(__file__).resolve().parent.parent / "registries" / "default.yaml"
)

# YAML section name -> group
_SECTIONS = {
    "symptoms": CategoryGroup.SYMPTOM,
    "activities": CategoryGroup.ACTIVITY,
    "social": CategoryGroup.SOCIAL,
}


class RegistryError(Exception):
    """Raised when a category registry file is missing or malformed."""


@dataclass(frozen=True)
class CategoryDefinition:
    label: str
    visible: bool = True


@dataclass(frozen=True)
class CategoryRegistry:
    """Ordered, immutable lists of recognized category labels per group."""

    symptoms: tuple[CategoryDefinition, ...] = ()
    activities: tuple[CategoryDefinition, ...] = ()
    social: tuple[CategoryDefinition, ...] = ()

    def definitions(self, group: CategoryGroup) -> tuple[CategoryDefinition, ...]:
        if group is CategoryGroup.SYMPTOM:
            return self.symptoms
        if group is CategoryGroup.ACTIVITY:
            return self.activities
        if group is CategoryGroup.SOCIAL:
            return self.social
        return ()

    def labels(self, group: CategoryGroup) -> frozenset[str]:
        """All labels of ``group``, hidden ones included."""
        return frozenset(d.label for d in self.definitions(group))

    def visible(self, group: CategoryGroup) -> list[Category]:
        """Visible categories of ``group`` in registry order."""
        return [Category(group, d.label) for d in self.definitions(group) if d.visible]

    def size(self, group: CategoryGroup | None = None) -> int:
        """Number of labels in ``group``, or across all groups."""
        if group is None:
            return len(self.symptoms) + len(self.activities) + len(self.social)
        return len(self.definitions(group))


def load_registry(path: str | Path | None = None) -> CategoryRegistry:
    """Parse a registry YAML file (the packaged default when ``path`` is empty).

    Raises:
        RegistryError: If the file is missing, unreadable or malformed.
    """
    path = Path(path).expanduser() if path else DEFAULT_REGISTRY_PATH
    if not path.is_file():
        raise RegistryError(f"Category registry not found: {path}")

    try:
        with open(path) as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise RegistryError(f"Invalid registry YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise RegistryError(f"Registry root must be a mapping: {path}")

    sections = {name: _parse_section(name, data.get(name, [])) for name in _SECTIONS}
    registry = CategoryRegistry(**sections)
    logger.info(
        "Loaded category registry from %s (%d symptoms, %d activities, %d social)",
        path,
        len(registry.symptoms),
        len(registry.activities),
        len(registry.social),
    )
    return registry


def _parse_section(name: str, entries: Any) -> tuple[CategoryDefinition, ...]:
    if not isinstance(entries, list):
        raise RegistryError(f"Registry section '{name}' must be a list")

    definitions: list[CategoryDefinition] = []
    seen: set[str] = set()
    for entry in entries:
        # Plain strings are shorthand for a visible category
        if isinstance(entry, str):
            label, visible = entry, True
        elif isinstance(entry, dict) and "label" in entry:
            label, visible = entry["label"], bool(entry.get("visible", True))
        else:
            raise RegistryError(f"Invalid entry in section '{name}': {entry!r}")

        label = str(label).strip()
        if not label:
            raise RegistryError(f"Empty label in section '{name}'")
        if label in seen:
            raise RegistryError(f"Duplicate label {label!r} in section '{name}'")
        seen.add(label)
        definitions.append(CategoryDefinition(label=label, visible=visible))
    return tuple(definitions)
