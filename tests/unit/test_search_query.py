"""Unit tests for the fluent search query builder."""

from __future__ import annotations

import pytest

from tablefuzz.config import Config
from tablefuzz.exceptions import (
    EmptySearchTermError,
    InvalidAlgorithmError,
    InvalidConfigurationError,
    NoSearchableColumnsError,
    PresetNotFoundError,
)
from tablefuzz.search.ast_nodes import FieldFilter, SortKey
from tablefuzz.search.query import Highlight, RecencyBoost, SearchBuilder
from tablefuzz.utils.matching import EditCosts


def builder(term: str = "john") -> SearchBuilder:
    return SearchBuilder(term).in_columns({"name": 10, "email": 5})


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestBuildValidation:
    def test_minimal(self):
        query = builder().build()
        assert query.term == "john"
        assert query.columns == (("name", 10.0), ("email", 5.0))
        assert query.algorithm == "fuzzy"
        assert query.limit == 15

    def test_no_columns(self):
        with pytest.raises(NoSearchableColumnsError):
            SearchBuilder("john").build()

    def test_unknown_algorithm(self):
        with pytest.raises(InvalidAlgorithmError):
            builder().using("metaphone").build()

    def test_alias_resolved(self):
        assert builder().using("like").build().algorithm == "simple"

    def test_negative_weight(self):
        with pytest.raises(InvalidConfigurationError):
            builder().weight("bio", -1).build()

    def test_non_numeric_weight(self):
        with pytest.raises(InvalidConfigurationError):
            builder().weight("bio", "high").build()

    def test_column_outside_searchable(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            builder().searchable(["name"]).build()
        assert "email" in str(exc_info.value)

    def test_column_within_searchable(self):
        query = builder().searchable(["name", "email", "id"]).build()
        assert query.column_names == ["name", "email"]

    def test_malformed_costs(self):
        with pytest.raises(InvalidConfigurationError):
            builder().costs({"cost_swap": 1}).build()

    def test_costs(self):
        query = builder().costs({"cost_insert": 2}).build()
        assert query.costs == EditCosts(insert=2)

    def test_invalid_match_mode(self):
        with pytest.raises(InvalidConfigurationError):
            builder().match_mode("some").build()

    def test_invalid_filter_operator(self):
        with pytest.raises(InvalidConfigurationError):
            builder().where("age", "~", 3).build()

    def test_empty_term(self):
        with pytest.raises(EmptySearchTermError):
            builder("   ").build()

    def test_empty_after_stop_words(self):
        with pytest.raises(EmptySearchTermError):
            builder("the and").ignore_stop_words("en").build()

    def test_empty_allowed(self):
        query = builder("").allow_empty().build()
        assert query.processed_term == ""

    def test_fallback_repeating_primary(self):
        with pytest.raises(InvalidConfigurationError):
            builder().using("fuzzy").fallback("soundex", "fuzzy").build()

    def test_unknown_fallback(self):
        with pytest.raises(InvalidAlgorithmError):
            builder().fallback("metaphone").build()

    def test_built_query_is_hashable(self):
        first = builder().with_options(trigram_limit=5).synonyms({"tv": ["television"]}).build()
        second = builder().with_options(trigram_limit=5).synonyms({"tv": ["television"]}).build()
        assert first == second
        assert hash(first) == hash(second)

    def test_mappings_are_read_only(self):
        query = builder().with_options(trigram_limit=5).synonyms({"tv": ["television"]}).build()
        with pytest.raises(TypeError):
            query.options["trigram_limit"] = 20
        with pytest.raises(TypeError):
            query.synonyms["tv"] = ()

    def test_builder_changes_after_build_do_not_leak(self):
        b = builder().with_options(trigram_limit=5)
        query = b.build()
        b.with_options(trigram_limit=20)
        assert query.options == {"trigram_limit": 5}

    def test_fallback_deduplicated(self):
        query = builder().fallback("soundex", "simple", "like", "soundex").build()
        assert query.fallback_algorithms == ("soundex", "simple")


# ---------------------------------------------------------------------------
# Setters
# ---------------------------------------------------------------------------


class TestSetters:
    def test_columns_as_list(self):
        query = SearchBuilder("x").in_columns(["title", "body"]).build()
        assert query.weights == {"title": 1.0, "body": 1.0}

    def test_typo_tolerance_clamped(self):
        assert builder().typo_tolerance(9).build().typo_tolerance == 5
        assert builder().typo_tolerance(-2).build().typo_tolerance == 0

    def test_typo_tolerance_drives_max_distance(self):
        query = builder().typo_tolerance(1).build()
        assert query.strategy_options().max_distance == 1

    def test_max_patterns_floor(self):
        assert builder().max_patterns(3).build().max_patterns == 10

    def test_prefix_boost_floor(self):
        assert builder().prefix_boost(0.5).build().prefix_boost == 1.0

    def test_match_all_tokenizes(self):
        query = builder("php tips").match_all().build()
        assert query.match_mode == "all"
        assert query.tokenize is True

    def test_match_any_after_all(self):
        query = builder("php tips").match_all().match_any().build()
        assert query.match_mode == "any"
        assert query.tokenize is True

    def test_where_two_argument_form(self):
        query = builder().where("status", "active").build()
        assert query.filters == (FieldFilter("status", "=", "active"),)

    def test_where_operator(self):
        query = builder().where("price", "<", 50).where_in("brand", ["a", "b"]).build()
        assert query.filters == (
            FieldFilter("price", "<", 50),
            FieldFilter("brand", "in", ("a", "b")),
        )

    def test_where_not(self):
        query = builder().where_not("status", "banned").build()
        assert query.filters == (FieldFilter("status", "=", "banned", negated=True),)

    def test_order_by(self):
        query = builder().order_by("created_at", "DESC").build()
        assert query.sort_by == (SortKey("created_at", descending=True),)

    def test_page(self):
        query = builder().page(3, 10).build()
        assert (query.limit, query.offset) == (10, 20)

    def test_next_page(self):
        query = builder().limit(10).build().next_page()
        assert query.offset == 10

    def test_take_alias(self):
        assert builder().take(5).build().limit == 5

    def test_highlight_tag(self):
        assert builder().highlight("mark").build().highlight == Highlight("<mark>", "</mark>")

    def test_highlight_open_close(self):
        query = builder().highlight("[", "]").build()
        assert query.highlight == Highlight("[", "]")

    def test_boost_recent(self):
        query = builder().boost_recent(2.0, "published_at", 7).build()
        assert query.recency == RecencyBoost(2.0, "published_at", 7)

    def test_stop_words_locale(self):
        query = builder("der hund").ignore_stop_words("de").build()
        assert query.processed_term == "hund"
        assert query.locale == "de"

    def test_synonyms(self):
        query = builder().synonyms({"laptop": ["notebook"]}).synonym_group(["tv", "television"])
        built = query.build()
        assert built.synonyms == {"laptop": ("notebook",)}
        assert built.synonym_groups == (("tv", "television"),)

    def test_debug_enables_relevance(self):
        query = builder().with_relevance(False).debug().build()
        assert query.debug is True
        assert query.with_relevance is True

    def test_fallback_queries(self):
        query = builder().fallback("soundex", "simple").build()
        assert [q.algorithm for q in query.fallback_queries()] == ["soundex", "simple"]
        assert all(q.fallback_algorithms == () for q in query.fallback_queries())


class TestStrategyOptions:
    def test_native_requires_opt_in(self):
        query = builder().build()
        assert query.strategy_options({"levenshtein"}).native_operators == frozenset()

    def test_native_intersects_backend(self):
        query = builder().use_native().build()
        options = query.strategy_options({"soundex", "regexp"})
        assert options.native_operators == frozenset({"soundex"})

    def test_min_match_length(self):
        query = builder().min_match_length(3).build()
        assert query.strategy_options().min_tolerant_length == 3


# ---------------------------------------------------------------------------
# Configuration layers
# ---------------------------------------------------------------------------


class TestFromConfig:
    def test_global_defaults(self):
        config = Config(default_algorithm="soundex", max_distance=1)
        query = SearchBuilder.from_config(config).search("x").in_columns(["name"]).build()
        assert query.algorithm == "soundex"
        assert query.typo_tolerance == 1

    def test_min_search_length_drives_typo_patterns(self):
        config = Config(min_search_length=4)
        query = SearchBuilder.from_config(config).search("jhn").in_columns(["name"]).build()
        assert query.strategy_options().min_tolerant_length == 4

    def test_typo_tolerance_disabled(self):
        config = Config(typo_tolerance_enabled=False)
        query = SearchBuilder.from_config(config).search("x").in_columns(["name"]).build()
        assert query.typo_tolerance == 0

    def test_preset_over_global(self):
        query = SearchBuilder.from_config(Config(), "users").search("jo").build()
        assert query.algorithm == "levenshtein"
        assert query.weights == {"name": 10.0, "email": 8.0, "username": 9.0}

    def test_overrides_over_preset(self):
        query = (
            SearchBuilder.from_config(Config(), "users", algorithm="trigram", typo_tolerance=1)
            .search("jo")
            .build()
        )
        assert query.algorithm == "trigram"
        assert query.typo_tolerance == 1

    def test_none_override_ignored(self):
        query = SearchBuilder.from_config(Config(), "users", algorithm=None).search("jo").build()
        assert query.algorithm == "levenshtein"

    def test_unknown_preset(self):
        with pytest.raises(PresetNotFoundError):
            SearchBuilder.from_config(Config(), "nope")

    def test_unknown_override(self):
        with pytest.raises(InvalidConfigurationError):
            SearchBuilder.from_config(Config(), colour="blue")

    def test_cache_and_highlight(self):
        config = Config(cache_enabled=True, cache_ttl=60, highlight_enabled=True)
        query = SearchBuilder.from_config(config).search("x").in_columns(["name"]).build()
        assert query.cache_ttl == 60
        assert query.highlight == Highlight("<em>", "</em>")

    def test_stop_words_from_preset(self):
        query = SearchBuilder.from_config(Config(), "blog").search("the best tips").build()
        assert query.processed_term == "best tips"

    def test_synonyms_from_config(self):
        config = Config(synonyms={"laptop": ["notebook"]}, synonym_groups=[["tv", "television"]])
        query = SearchBuilder.from_config(config).search("x").in_columns(["name"]).build()
        assert query.synonyms == {"laptop": ("notebook",)}
        assert query.synonym_groups == (("tv", "television"),)
