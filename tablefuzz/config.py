"""Configuration management for tablefuzz."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from tablefuzz.exceptions import (
    ConfigParseError,
    ConfigValidationError,
    InvalidAlgorithmError,
    InvalidConfigurationError,
    PresetNotFoundError,
)
from tablefuzz.search.query import ScoringWeights
from tablefuzz.search.strategies import canonical_algorithm
from tablefuzz.utils.text import stop_words_for

log = logging.getLogger(__name__)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "tablefuzz" / "config.toml"


# Keys a preset (or a per-call override) may set.
PRESET_KEYS = frozenset(
    {
        "columns",
        "algorithm",
        "typo_tolerance",
        "prefix_boost",
        "min_match_length",
        "match_mode",
        "tokenize",
        "stop_words_enabled",
        "accent_insensitive",
        "unicode_normalize",
        "use_native",
        "allow_empty",
        "fallback",
        "cache_ttl",
        "highlight",
        "max_patterns",
        "locale",
    }
)

BUILTIN_PRESETS: dict[str, dict[str, Any]] = {
    "blog": {
        "columns": {"title": 10, "body": 5, "excerpt": 3},
        "algorithm": "fuzzy",
        "typo_tolerance": 2,
        "stop_words_enabled": True,
        "accent_insensitive": True,
    },
    "ecommerce": {
        "columns": {"name": 10, "description": 5, "sku": 8, "brand": 6},
        "algorithm": "fuzzy",
        "typo_tolerance": 1,
        "stop_words_enabled": False,
    },
    "users": {
        "columns": {"name": 10, "email": 8, "username": 9},
        "algorithm": "levenshtein",
        "typo_tolerance": 2,
        "accent_insensitive": True,
    },
    "phonetic": {
        "algorithm": "soundex",
        "typo_tolerance": 0,
        "columns": {"name": 10},
    },
    "exact": {
        "algorithm": "simple",
        "typo_tolerance": 0,
    },
}


@dataclass
class Config:
    """Application configuration.

    Holds the global search defaults. Presets and per-call options are
    layered on top by ``resolve_options``.

    Attributes:
        default_algorithm: Algorithm used when none is requested.
        allow_empty_search: Whether an empty term matches every record.
        min_search_length: Terms shorter than this skip typo-tolerant patterns.
        locale: Locale for built-in stop words.
        use_native_functions: Prefer native database operators when available.
        typo_tolerance_enabled: When False, typo tolerance is forced to 0.
        max_distance: Default typo tolerance (0-5).
        scoring: Base scores of the relevance tiers.
        stop_words_enabled: Drop stop words from search terms.
        stop_words: Per-locale stop word overrides.
        synonyms: Synonym lists keyed by word.
        synonym_groups: Groups of interchangeable words.
        cache_enabled: Cache search results.
        cache_ttl: Cache lifetime in seconds.
        cache_prefix: Prefix of cache keys.
        max_patterns: Ceiling on generated patterns per term.
        cost_insert: Levenshtein insertion cost.
        cost_replace: Levenshtein substitution cost.
        cost_delete: Levenshtein deletion cost.
        trigram_min_similarity: Native trigram threshold in percent (0-100).
        highlight_enabled: Wrap matches in highlight tags.
        highlight_open: Opening highlight tag.
        highlight_close: Closing highlight tag.
        unicode_normalize: NFC-normalize search terms.
        accent_insensitive: Fold accents in terms and values.
        colored_output: Whether to use colored terminal output.
        presets: Named option sets.
        config_path: Path where config was loaded from (None if defaults).
    """

    default_algorithm: str = "fuzzy"
    allow_empty_search: bool = False
    min_search_length: int = 2
    locale: str = "en"
    use_native_functions: bool = False
    typo_tolerance_enabled: bool = True
    max_distance: int = 2
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    stop_words_enabled: bool = False
    stop_words: dict[str, list[str]] = field(default_factory=dict)
    synonyms: dict[str, list[str]] = field(default_factory=dict)
    synonym_groups: list[list[str]] = field(default_factory=list)
    cache_enabled: bool = False
    cache_ttl: int = 3600
    cache_prefix: str = "tablefuzz_"
    max_patterns: int = 100
    cost_insert: int = 1
    cost_replace: int = 1
    cost_delete: int = 1
    trigram_min_similarity: int = 30
    highlight_enabled: bool = False
    highlight_open: str = "<em>"
    highlight_close: str = "</em>"
    unicode_normalize: bool = True
    accent_insensitive: bool = True
    colored_output: bool = True
    presets: dict[str, dict[str, Any]] = field(
        default_factory=lambda: {k: dict(v) for k, v in BUILTIN_PRESETS.items()}
    )
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        try:
            canonical_algorithm(self.default_algorithm)
        except InvalidAlgorithmError as e:
            raise ConfigValidationError(
                "search.default_algorithm", self.default_algorithm, str(e)
            ) from e

        for key in ("cost_insert", "cost_replace", "cost_delete"):
            value = getattr(self, key)
            if value < 0:
                raise ConfigValidationError(f"levenshtein.{key}", value, "must be >= 0")

        if not 0 <= self.max_distance <= 5:
            warnings.append(
                f"typo_tolerance.max_distance={self.max_distance} "
                "is outside 0-5 and will be clamped"
            )

        if self.max_patterns < 10:
            warnings.append(
                f"performance.max_patterns={self.max_patterns} is below the minimum of 10"
            )

        if not 0 <= self.trigram_min_similarity <= 100:
            warnings.append(
                f"trigram.min_similarity={self.trigram_min_similarity} "
                f"is outside valid range 0-100"
            )

        if self.cache_ttl < 0:
            warnings.append(f"cache.ttl={self.cache_ttl} is negative; caching disabled")

        if self.stop_words_enabled and not (
            self.stop_words.get(self.locale) or stop_words_for(self.locale)
        ):
            warnings.append(f"No stop words known for locale '{self.locale}'")

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: tablefuzz init-config"
        )
        return config, warnings + config.validate()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    log.info("Loaded configuration from %s", config_path)
    return config, warnings + config.validate()


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigValidationError(name, value, "must be a table")
    return value


def _check(section: str, key: str, value: Any, types: type | tuple[type, ...], what: str) -> Any:
    # bool is an int subclass; never accept it for numeric settings
    if isinstance(value, bool) and types is not bool:
        raise ConfigValidationError(f"{section}.{key}", value, f"must be {what}")
    if not isinstance(value, types):
        raise ConfigValidationError(f"{section}.{key}", value, f"must be {what}")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # [search]
    search = _section(data, "search")
    if "default_algorithm" in search:
        config.default_algorithm = _check(
            "search", "default_algorithm", search["default_algorithm"], str, "a string"
        )
    if "allow_empty_search" in search:
        config.allow_empty_search = _check(
            "search", "allow_empty_search", search["allow_empty_search"], bool, "a boolean"
        )
    if "min_search_length" in search:
        config.min_search_length = _check(
            "search", "min_search_length", search["min_search_length"], int, "an integer"
        )
    if "locale" in search:
        config.locale = _check("search", "locale", search["locale"], str, "a string")
    if "use_native_functions" in search:
        config.use_native_functions = _check(
            "search", "use_native_functions", search["use_native_functions"], bool, "a boolean"
        )

    # [typo_tolerance]
    typo = _section(data, "typo_tolerance")
    if "enabled" in typo:
        config.typo_tolerance_enabled = _check(
            "typo_tolerance", "enabled", typo["enabled"], bool, "a boolean"
        )
    if "max_distance" in typo:
        config.max_distance = _check(
            "typo_tolerance", "max_distance", typo["max_distance"], int, "an integer"
        )

    # [scoring]
    scoring = _section(data, "scoring")
    if scoring:
        values = {}
        for key, attr in (
            ("exact_match", "exact"),
            ("prefix_match", "prefix"),
            ("contains", "contains"),
            ("fuzzy_match", "fuzzy"),
            ("fuzzy_penalty", "fuzzy_penalty"),
        ):
            if key in scoring:
                values[attr] = float(_check("scoring", key, scoring[key], (int, float), "a number"))
        config.scoring = ScoringWeights(**values)

    # [stop_words]
    stop_words = _section(data, "stop_words")
    for key, value in stop_words.items():
        if key == "enabled":
            config.stop_words_enabled = _check("stop_words", key, value, bool, "a boolean")
            continue
        if not isinstance(value, list) or not all(isinstance(w, str) for w in value):
            raise ConfigValidationError(f"stop_words.{key}", value, "must be a list of strings")
        config.stop_words[key] = value

    # [synonyms]
    synonyms = _section(data, "synonyms")
    for key, value in synonyms.items():
        if key == "groups":
            if not isinstance(value, list) or not all(isinstance(g, list) for g in value):
                raise ConfigValidationError("synonyms.groups", value, "must be a list of lists")
            config.synonym_groups = value
            continue
        if not isinstance(value, list) or not all(isinstance(w, str) for w in value):
            raise ConfigValidationError(f"synonyms.{key}", value, "must be a list of strings")
        config.synonyms[key] = value

    # [cache]
    cache = _section(data, "cache")
    if "enabled" in cache:
        config.cache_enabled = _check("cache", "enabled", cache["enabled"], bool, "a boolean")
    if "ttl" in cache:
        config.cache_ttl = _check("cache", "ttl", cache["ttl"], int, "an integer")
    if "prefix" in cache:
        config.cache_prefix = _check("cache", "prefix", cache["prefix"], str, "a string")

    # [performance]
    performance = _section(data, "performance")
    if "max_patterns" in performance:
        config.max_patterns = _check(
            "performance", "max_patterns", performance["max_patterns"], int, "an integer"
        )

    # [levenshtein]
    levenshtein = _section(data, "levenshtein")
    for key in ("cost_insert", "cost_replace", "cost_delete"):
        if key in levenshtein:
            setattr(config, key, _check("levenshtein", key, levenshtein[key], int, "an integer"))

    # [trigram]
    trigram = _section(data, "trigram")
    if "min_similarity" in trigram:
        config.trigram_min_similarity = _check(
            "trigram", "min_similarity", trigram["min_similarity"], int, "an integer"
        )

    # [highlighting]
    highlighting = _section(data, "highlighting")
    if "enabled" in highlighting:
        config.highlight_enabled = _check(
            "highlighting", "enabled", highlighting["enabled"], bool, "a boolean"
        )
    if "tag_open" in highlighting:
        config.highlight_open = _check(
            "highlighting", "tag_open", highlighting["tag_open"], str, "a string"
        )
    if "tag_close" in highlighting:
        config.highlight_close = _check(
            "highlighting", "tag_close", highlighting["tag_close"], str, "a string"
        )

    # [unicode]
    unicode = _section(data, "unicode")
    if "normalize" in unicode:
        config.unicode_normalize = _check(
            "unicode", "normalize", unicode["normalize"], bool, "a boolean"
        )
    if "accent_insensitive" in unicode:
        config.accent_insensitive = _check(
            "unicode", "accent_insensitive", unicode["accent_insensitive"], bool, "a boolean"
        )

    # [display]
    display = _section(data, "display")
    if "colored_output" in display:
        config.colored_output = _check(
            "display", "colored_output", display["colored_output"], bool, "a boolean"
        )

    # [presets.<name>]
    presets = _section(data, "presets")
    for name, preset in presets.items():
        if not isinstance(preset, dict):
            raise ConfigValidationError(f"presets.{name}", preset, "must be a table")
        unknown = set(preset) - PRESET_KEYS
        if unknown:
            raise ConfigValidationError(
                f"presets.{name}", sorted(unknown), f"unknown keys: {', '.join(sorted(unknown))}"
            )
        config.presets[name] = preset

    return config


def resolve_options(
    config: Config,
    preset: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge global config, a named preset and per-call overrides.

    Precedence: overrides > preset > global config.

    Raises:
        PresetNotFoundError: If ``preset`` is not defined.
        InvalidConfigurationError: If an override key is unknown.
    """
    resolved: dict[str, Any] = {
        "columns": {},
        "algorithm": config.default_algorithm,
        "typo_tolerance": config.max_distance if config.typo_tolerance_enabled else 0,
        "prefix_boost": 1.0,
        # shortest term that gets typo-tolerant patterns; strategies used directly default to 4
        "min_match_length": config.min_search_length,
        "match_mode": "any",
        "tokenize": False,
        "stop_words_enabled": config.stop_words_enabled,
        "accent_insensitive": config.accent_insensitive,
        "unicode_normalize": config.unicode_normalize,
        "use_native": config.use_native_functions,
        "allow_empty": config.allow_empty_search,
        "fallback": [],
        "cache_ttl": config.cache_ttl if config.cache_enabled and config.cache_ttl > 0 else None,
        "highlight": config.highlight_enabled,
        "max_patterns": config.max_patterns,
        "locale": config.locale,
    }

    if preset is not None:
        if preset not in config.presets:
            raise PresetNotFoundError(preset, sorted(config.presets))
        resolved.update(config.presets[preset])

    for key, value in (overrides or {}).items():
        if key not in PRESET_KEYS:
            raise InvalidConfigurationError(key, value, "unknown search option")
        if value is not None:
            resolved[key] = value

    locale = resolved["locale"]
    if resolved["stop_words_enabled"]:
        resolved["stop_words"] = config.stop_words.get(locale) or sorted(stop_words_for(locale))
    else:
        resolved["stop_words"] = []
    resolved["synonyms"] = dict(config.synonyms)
    resolved["synonym_groups"] = [list(g) for g in config.synonym_groups]
    resolved["min_similarity"] = config.trigram_min_similarity / 100
    resolved["costs"] = {
        "cost_insert": config.cost_insert,
        "cost_replace": config.cost_replace,
        "cost_delete": config.cost_delete,
    }
    resolved["scoring"] = config.scoring
    return resolved


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "search": {
            "default_algorithm": config.default_algorithm,
            "allow_empty_search": config.allow_empty_search,
            "min_search_length": config.min_search_length,
            "locale": config.locale,
            "use_native_functions": config.use_native_functions,
        },
        "typo_tolerance": {
            "enabled": config.typo_tolerance_enabled,
            "max_distance": config.max_distance,
        },
        "scoring": {
            "exact_match": config.scoring.exact,
            "prefix_match": config.scoring.prefix,
            "contains": config.scoring.contains,
            "fuzzy_match": config.scoring.fuzzy,
            "fuzzy_penalty": config.scoring.fuzzy_penalty,
        },
        "stop_words": {"enabled": config.stop_words_enabled, **config.stop_words},
        "cache": {
            "enabled": config.cache_enabled,
            "ttl": config.cache_ttl,
            "prefix": config.cache_prefix,
        },
        "performance": {"max_patterns": config.max_patterns},
        "levenshtein": {
            "cost_insert": config.cost_insert,
            "cost_replace": config.cost_replace,
            "cost_delete": config.cost_delete,
        },
        "trigram": {"min_similarity": config.trigram_min_similarity},
        "highlighting": {
            "enabled": config.highlight_enabled,
            "tag_open": config.highlight_open,
            "tag_close": config.highlight_close,
        },
        "unicode": {
            "normalize": config.unicode_normalize,
            "accent_insensitive": config.accent_insensitive,
        },
        "display": {"colored_output": config.colored_output},
    }

    synonyms: dict[str, Any] = dict(config.synonyms)
    if config.synonym_groups:
        synonyms["groups"] = config.synonym_groups
    if synonyms:
        data["synonyms"] = synonyms

    # Only presets that differ from the built-in ones
    custom = {k: v for k, v in config.presets.items() if BUILTIN_PRESETS.get(k) != v}
    if custom:
        data["presets"] = custom

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
