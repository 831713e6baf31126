"""
Unit tests for settings loading and validation.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from memory_search.core.config import Settings, get_settings


class TestSettings:
    """Defaults, environment overrides and cross-field checks."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MAX_GRAPH_DEPTH", raising=False)

        settings = Settings(_env_file=None)

        assert settings.metadata_index_name == "memory_metadata_idx"
        assert settings.observation_index_name == "observation_content_idx"
        assert settings.max_graph_depth == 2
        assert settings.max_related_items == 3
        assert settings.enable_vector_search is True
        assert settings.ensure_schema_on_startup is False

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENABLE_VECTOR_SEARCH", "false")
        monkeypatch.setenv("MAX_RELATED_ITEMS", "7")

        settings = Settings(_env_file=None)

        assert settings.enable_vector_search is False
        assert settings.max_related_items == 7

    def test_graph_depth_cannot_exceed_traversal_ceiling(self) -> None:
        with pytest.raises(ValidationError, match="exceeds"):
            Settings(_env_file=None, max_graph_depth=6, max_traversal_depth=5)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"search_default_threshold": 1.5},
            {"search_default_limit": 0},
            {"max_related_items": 0},
        ],
    )
    def test_field_constraints(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()

        assert get_settings() is get_settings()
