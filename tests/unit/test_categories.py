"""
Unit tests for the category registry and category suggestion.
"""

import pytest

from memory_engine.memory.categories import (
    BUILTIN_CATEGORIES,
    DEFAULT_TEMPLATE,
    CategoryRegistry,
    suggest_category,
)


@pytest.fixture
def registry():
    return CategoryRegistry()


class TestNormalize:

    @pytest.mark.parametrize("raw, expected", [
        ("Preferences", "Preferences"),
        ("preferences", "Preferences"),
        ("  PREFERENCES ", "Preferences"),
        ("prefs", "Preferences"),
        ("file_operations", "File Operations"),
        ("file-operations", "File Operations"),
        ("chat", "Conversations"),
        ("urgent", "Important"),
    ])
    def test_known_values(self, registry, raw, expected):
        assert registry.normalize(raw) == expected

    def test_canonical_strings_are_shared(self, registry):
        assert registry.normalize("prefs") is registry.normalize("Preferences")

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_is_none(self, registry, raw):
        assert registry.normalize(raw) is None

    def test_unknown_legacy_value_kept(self, registry):
        assert registry.normalize("  home   improvement ") == "home improvement"
        assert not registry.is_known("home improvement")


class TestRegister:

    def test_register_custom(self, registry):
        name = registry.register("Travel Plans")

        assert name == "Travel Plans"
        assert registry.normalize("travel_plans") == "Travel Plans"
        assert registry.names() == list(BUILTIN_CATEGORIES) + ["Travel Plans"]

    def test_register_idempotent(self, registry):
        registry.register("Travel")
        registry.register("travel")
        assert registry.names().count("Travel") == 1

    def test_register_builtin_returns_builtin(self, registry):
        assert registry.register("technical") == "Technical"
        assert registry.names() == list(BUILTIN_CATEGORIES)

    def test_register_empty_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register("   ")

    def test_templates(self, registry):
        registry.register("Travel", template="You are a travel planner.")

        assert registry.template_for("travel") == "You are a travel planner."
        assert registry.template_for(None) == DEFAULT_TEMPLATE
        assert registry.template_for("Preferences").startswith("You are a personalization assistant")


class TestSuggest:

    def test_two_hits_required(self):
        assert suggest_category("Please upload the file") == "File Operations"
        assert suggest_category("Please upload it") is None

    def test_most_hits_wins(self):
        text = "Remember this important and critical deadline for the code"
        assert suggest_category(text) == "Important"

    def test_custom_threshold(self):
        assert suggest_category("fix the bug", min_hits=1) == "Technical"

    def test_registry_delegates(self, registry):
        assert registry.suggest("I prefer the dark theme setting") == "Preferences"
