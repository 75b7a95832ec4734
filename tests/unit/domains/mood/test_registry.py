"""Tests for the YAML category registry loader."""

from __future__ import annotations

import pytest

from moodlens.domains.mood.domain_logic.models import Category, CategoryGroup
from moodlens.domains.mood.domain_logic.registry import (
    DEFAULT_REGISTRY_PATH,
    RegistryError,
    load_registry,
)


def test_default_registry_loads():
    registry = load_registry()
    assert DEFAULT_REGISTRY_PATH.is_file()
    assert "walking" in registry.labels(CategoryGroup.ACTIVITY)
    assert "racing_thoughts" in registry.labels(CategoryGroup.SYMPTOM)
    assert registry.size() == sum(registry.size(g) for g in CategoryGroup)


def test_default_registry_hides_nap():
    registry = load_registry()
    assert "nap" in registry.labels(CategoryGroup.ACTIVITY)
    assert Category(CategoryGroup.ACTIVITY, "nap") not in registry.visible(CategoryGroup.ACTIVITY)


def test_custom_file_preserves_order_and_visibility(tmp_path):
    path = tmp_path / "registry.yaml"
    path.write_text(
        "symptoms: [panic, low_energy]\n"
        "activities:\n"
        "  - label: gym\n"
        "    visible: false\n"
        "  - reading\n"
    )
    registry = load_registry(path)
    assert [d.label for d in registry.symptoms] == ["panic", "low_energy"]
    assert registry.visible(CategoryGroup.ACTIVITY) == [Category(CategoryGroup.ACTIVITY, "reading")]
    assert registry.social == ()
    assert registry.definitions(CategoryGroup.HASHTAG) == ()


def test_missing_file(tmp_path):
    with pytest.raises(RegistryError, match="not found"):
        load_registry(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("symptoms: [unclosed\n")
    with pytest.raises(RegistryError, match="Invalid registry YAML"):
        load_registry(path)


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "root must be a mapping"),
        ("symptoms: panic\n", "must be a list"),
        ("symptoms: [panic, panic]\n", "Duplicate label"),
        ("social: ['  ']\n", "Empty label"),
        ("activities: [{visible: true}]\n", "Invalid entry"),
    ],
)
def test_malformed_registry(tmp_path, content, message):
    path = tmp_path / "registry.yaml"
    path.write_text(content)
    with pytest.raises(RegistryError, match=message):
        load_registry(path)
