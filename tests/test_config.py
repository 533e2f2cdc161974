"""
Tests for EngineConfig.

These tests verify:
1. Defaults match the documented knobs
2. Invalid values fail at construction
3. CASEFILE_* environment variables override defaults
"""

import pytest

from casefile.config import EngineConfig


class TestDefaults:

    def test_defaults(self):
        config = EngineConfig()

        assert config.search_limit == 3
        assert config.cache_capacity == 100
        assert config.autocomplete_limit == 8
        assert config.context_max_length == 6000
        assert config.default_term_weight == 0.5

    def test_frozen(self):
        with pytest.raises(AttributeError):
            EngineConfig().search_limit = 10

    @pytest.mark.parametrize("field_name", [
        "search_limit", "cache_capacity", "autocomplete_limit", "context_max_length",
    ])
    def test_non_positive_rejected(self, field_name):
        with pytest.raises(ValueError, match=field_name):
            EngineConfig(**{field_name: 0})

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError, match="default_term_weight"):
            EngineConfig(default_term_weight=-0.1)


class TestFromEnv:

    def test_empty_environment_gives_defaults(self):
        assert EngineConfig.from_env({}) == EngineConfig()

    def test_overrides(self):
        config = EngineConfig.from_env({
            "CASEFILE_SEARCH_LIMIT": "5",
            "CASEFILE_CACHE_CAPACITY": " 20 ",
            "CASEFILE_DEFAULT_TERM_WEIGHT": "0.25",
        })

        assert config.search_limit == 5
        assert config.cache_capacity == 20
        assert config.default_term_weight == 0.25
        assert config.autocomplete_limit == 8

    def test_blank_value_keeps_default(self):
        assert EngineConfig.from_env({"CASEFILE_SEARCH_LIMIT": ""}).search_limit == 3

    def test_unparsable_value_names_variable(self):
        with pytest.raises(ValueError, match="CASEFILE_CONTEXT_MAX_LENGTH"):
            EngineConfig.from_env({"CASEFILE_CONTEXT_MAX_LENGTH": "lots"})

    def test_unparsable_value_chains_parse_error(self):
        with pytest.raises(ValueError) as exc:
            EngineConfig.from_env({"CASEFILE_DEFAULT_TERM_WEIGHT": "heavy"})

        assert isinstance(exc.value.__cause__, ValueError)
        assert "heavy" in str(exc.value)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CASEFILE_AUTOCOMPLETE_LIMIT", "4")

        assert EngineConfig.from_env().autocomplete_limit == 4
