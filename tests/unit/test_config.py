"""Unit tests for configuration."""

from pathlib import Path

import pytest

from tablefuzz.config import (
    BUILTIN_PRESETS,
    Config,
    load_config,
    resolve_options,
    save_config,
)
from tablefuzz.exceptions import (
    ConfigParseError,
    ConfigValidationError,
    InvalidConfigurationError,
    PresetNotFoundError,
)


def test_default_config() -> None:
    """Test that default config has sensible values."""
    config = Config()
    assert config.default_algorithm == "fuzzy"
    assert config.max_distance == 2
    assert config.colored_output is True
    assert set(BUILTIN_PRESETS) <= set(config.presets)


def test_load_missing_config(temp_dir: Path) -> None:
    """Test loading when config file doesn't exist."""
    config_path = temp_dir / "nonexistent.toml"
    config, warnings = load_config(config_path)

    assert config.config_path is None
    assert any("init-config" in w for w in warnings)


def test_load_valid_config(sample_config: Path) -> None:
    """Test loading a valid config file."""
    config, warnings = load_config(sample_config)

    assert warnings == []
    assert config.config_path == sample_config.resolve()
    assert config.default_algorithm == "levenshtein"
    assert config.min_search_length == 3
    assert config.max_distance == 1
    assert config.scoring.exact == 200
    assert config.scoring.prefix == 50
    assert config.synonyms == {"laptop": ["notebook"]}
    assert config.synonym_groups == [["tv", "television"]]
    assert config.colored_output is False
    assert config.presets["people"]["columns"] == {"name": 10, "email": 5}
    assert "blog" in config.presets


def test_load_invalid_toml(temp_dir: Path) -> None:
    """Test loading invalid TOML raises error."""
    config_path = temp_dir / "invalid.toml"
    config_path.write_text("this is not valid [ toml")

    with pytest.raises(ConfigParseError):
        load_config(config_path)


@pytest.mark.parametrize(
    "content",
    [
        '[display]\ncolored_output = "not a boolean"\n',
        "[typo_tolerance]\nmax_distance = true\n",
        '[scoring]\nexact_match = "high"\n',
        "[synonyms]\nlaptop = 'notebook'\n",
        "search = 3\n",
        '[presets.people]\ncolour = "blue"\n',
        '[search]\ndefault_algorithm = "metaphone"\n',
        "[levenshtein]\ncost_insert = -1\n",
    ],
)
def test_config_validation_errors(temp_dir: Path, content: str) -> None:
    """Test that invalid values raise validation error."""
    config_path = temp_dir / "bad.toml"
    config_path.write_text(content)

    with pytest.raises(ConfigValidationError):
        load_config(config_path)


def test_validation_warnings() -> None:
    config = Config(max_distance=9, max_patterns=3, trigram_min_similarity=150, cache_ttl=-1)
    warnings = config.validate()
    assert len(warnings) == 4


def test_unknown_stop_word_locale_warns() -> None:
    config = Config(stop_words_enabled=True, locale="xx")
    assert any("'xx'" in w for w in config.validate())


class TestResolveOptions:
    def test_global_defaults(self) -> None:
        opts = resolve_options(Config(max_distance=1, max_patterns=50))
        assert opts["algorithm"] == "fuzzy"
        assert opts["typo_tolerance"] == 1
        assert opts["max_patterns"] == 50
        assert opts["cache_ttl"] is None
        assert opts["stop_words"] == []

    def test_typo_tolerance_disabled(self) -> None:
        assert resolve_options(Config(typo_tolerance_enabled=False))["typo_tolerance"] == 0

    def test_min_search_length_gates_typo_patterns(self) -> None:
        assert resolve_options(Config())["min_match_length"] == 2
        assert resolve_options(Config(min_search_length=4))["min_match_length"] == 4

    def test_preset_over_global(self) -> None:
        opts = resolve_options(Config(default_algorithm="trigram"), "users")
        assert opts["algorithm"] == "levenshtein"
        assert opts["columns"] == {"name": 10, "email": 8, "username": 9}

    def test_overrides_over_preset(self) -> None:
        opts = resolve_options(Config(), "users", {"algorithm": "soundex", "typo_tolerance": None})
        assert opts["algorithm"] == "soundex"
        assert opts["typo_tolerance"] == 2

    def test_unknown_preset(self) -> None:
        with pytest.raises(PresetNotFoundError):
            resolve_options(Config(), "missing")

    def test_unknown_override(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            resolve_options(Config(), None, {"colour": "blue"})

    def test_stop_words_for_locale(self) -> None:
        opts = resolve_options(Config(stop_words_enabled=True, locale="de"))
        assert "und" in opts["stop_words"]

    def test_configured_stop_words_win(self) -> None:
        config = Config(stop_words_enabled=True, stop_words={"en": ["foo"]})
        assert resolve_options(config)["stop_words"] == ["foo"]

    def test_cache_ttl_when_enabled(self) -> None:
        assert resolve_options(Config(cache_enabled=True, cache_ttl=60))["cache_ttl"] == 60

    def test_costs_and_similarity(self) -> None:
        opts = resolve_options(Config(cost_replace=2, trigram_min_similarity=40))
        assert opts["costs"] == {"cost_insert": 1, "cost_replace": 2, "cost_delete": 1}
        assert opts["min_similarity"] == 0.4


def test_save_config_roundtrip(temp_dir: Path) -> None:
    config = Config(
        default_algorithm="trigram",
        max_distance=3,
        synonyms={"tv": ["television"]},
        synonym_groups=[["couch", "sofa"]],
        highlight_open="[",
        highlight_close="]",
    )
    config.presets["mine"] = {"algorithm": "simple", "columns": {"title": 5}}
    path = temp_dir / "nested" / "config.toml"

    save_config(config, path)
    loaded, warnings = load_config(path)

    assert warnings == []
    assert loaded.default_algorithm == "trigram"
    assert loaded.max_distance == 3
    assert loaded.synonyms == {"tv": ["television"]}
    assert loaded.synonym_groups == [["couch", "sofa"]]
    assert (loaded.highlight_open, loaded.highlight_close) == ("[", "]")
    assert loaded.presets["mine"] == {"algorithm": "simple", "columns": {"title": 5}}
    assert loaded.scoring == config.scoring


def test_save_only_custom_presets(temp_dir: Path) -> None:
    path = temp_dir / "config.toml"
    save_config(Config(), path)
    assert "[presets" not in path.read_text()
