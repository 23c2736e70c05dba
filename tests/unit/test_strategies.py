"""Unit tests for pattern-generating match strategies."""

from __future__ import annotations

import pytest

from tablefuzz.exceptions import InvalidAlgorithmError
from tablefuzz.search.ast_nodes import LikePattern, NativeHint, escape_like
from tablefuzz.search.strategies import (
    ANY,
    ONE,
    PHONETIC_SUBSTITUTIONS,
    SUPPORTED_ALGORITHMS,
    StrategyOptions,
    canonical_algorithm,
    contains,
    get_strategy,
    like,
    term_trigrams,
)


def templates(patterns) -> list[str]:
    return [p.template for p in patterns]


class TestLikeBuilder:
    def test_escapes_literals(self):
        assert like(ANY, "50%_off", ANY).template == "%50\\%\\_off%"

    def test_escape_backslash(self):
        assert escape_like("a\\b") == "a\\\\b"

    def test_collapses_consecutive_any(self):
        assert like(ANY, "", ANY, "ab", ANY, ANY).template == "%ab%"

    def test_one_wildcard(self):
        assert like("a", ONE, "c").template == "a_c"

    def test_contains(self):
        assert contains("doe") == LikePattern("%doe%")


class TestRegistry:
    def test_supported(self):
        for name in ("fuzzy", "levenshtein", "soundex", "trigram", "simple", "like"):
            assert name in SUPPORTED_ALGORITHMS

    def test_alias(self):
        assert canonical_algorithm("LIKE") == "simple"
        assert get_strategy("like").name == "simple"

    def test_unknown(self):
        with pytest.raises(InvalidAlgorithmError) as exc_info:
            get_strategy("metaphone")
        assert "Supported algorithms are" in str(exc_info.value)


class TestCommonBehaviour:
    @pytest.mark.parametrize("name", ["fuzzy", "levenshtein", "soundex", "trigram", "simple"])
    def test_deterministic(self, name):
        strategy = get_strategy(name)
        assert strategy.generate_patterns("searching") == strategy.generate_patterns("searching")

    @pytest.mark.parametrize("name", ["fuzzy", "levenshtein", "soundex", "trigram", "simple"])
    def test_no_duplicates(self, name):
        patterns = get_strategy(name).generate_patterns("mississippi")
        assert len(patterns) == len(set(patterns))

    @pytest.mark.parametrize("name", ["fuzzy", "levenshtein", "soundex", "trigram", "simple"])
    def test_empty_term(self, name):
        assert get_strategy(name).generate_patterns("   ") == []

    @pytest.mark.parametrize("name", ["fuzzy", "levenshtein", "soundex", "trigram", "simple"])
    def test_pattern_ceiling(self, name):
        options = StrategyOptions(max_patterns=20, max_distance=3)
        patterns = get_strategy(name).generate_patterns("internationalize", options)
        assert 0 < len(patterns) <= 20

    def test_lowercases(self):
        assert get_strategy("simple").generate_patterns("JOHN") == [LikePattern("%john%")]

    def test_short_term_patterns(self):
        patterns = get_strategy("fuzzy").generate_patterns("jo")
        assert templates(patterns) == ["%jo%", "jo%", "jo"]

    def test_short_threshold_from_options(self):
        options = StrategyOptions(min_tolerant_length=2)
        patterns = get_strategy("fuzzy").generate_patterns("jhn", options)
        assert len(patterns) > 3


class TestFuzzyStrategy:
    def test_core_patterns(self):
        t = templates(get_strategy("fuzzy").generate_patterns("john"))
        assert t[:2] == ["%john%", "john%"]
        assert "%j%hn%" in t  # omission
        assert "%j_hn%" in t  # substitution
        assert "%ojhn%" in t  # transposition
        assert "j%hn" in t
        assert "jo%n" in t

    def test_double_letter_collapse(self):
        t = templates(get_strategy("fuzzy").generate_patterns("hello"))
        assert "%helo%" in t

    def test_words(self):
        t = templates(get_strategy("fuzzy").generate_patterns("php framework"))
        assert "%framework%" in t
        assert "%php%" in t

    def test_tiers(self):
        tiers = get_strategy("fuzzy").score_tiers("name", "john")
        assert [(r.pattern.template, r.score) for r in tiers] == [
            ("john", 300),
            ("john%", 200),
            ("% john%", 100),
            ("%john %", 50),
            ("%john%", 25),
        ]
        assert all(r.column == "name" for r in tiers)


class TestLevenshteinStrategy:
    def test_native(self):
        options = StrategyOptions(max_distance=2, native_operators=frozenset({"levenshtein"}))
        patterns = get_strategy("levenshtein").generate_patterns("john", options)
        assert patterns == [NativeHint("levenshtein", "john", 2)]

    def test_native_distance_clamped(self):
        options = StrategyOptions(max_distance=5, native_operators=frozenset({"levenshtein"}))
        patterns = get_strategy("levenshtein").generate_patterns("john", options)
        assert patterns == [NativeHint("levenshtein", "john", 3)]

    def test_distance_one(self):
        options = StrategyOptions(max_distance=1)
        t = templates(get_strategy("levenshtein").generate_patterns("john", options))
        assert "%ohn%" in t  # deletion
        assert "%jo_hn%" in t  # insertion
        assert "%j_hn%" in t  # substitution
        assert "%jn%" not in t  # two deletions need distance 2

    def test_distance_two(self):
        options = StrategyOptions(max_distance=2)
        t = templates(get_strategy("levenshtein").generate_patterns("john", options))
        assert "%jn%" in t
        assert "%jhon%" in t

    def test_distance_three(self):
        options = StrategyOptions(max_distance=3)
        t = templates(get_strategy("levenshtein").generate_patterns("john", options))
        assert {"jo%", "%hn", "j%n"} <= set(t)

    def test_tiers(self):
        tiers = get_strategy("levenshtein").score_tiers("name", "john")
        assert [(r.pattern.template, r.score) for r in tiers] == [
            ("%john%", 100),
            ("%joh%", 50),
            ("%jo%", 25),
        ]


class TestSoundexStrategy:
    def test_native(self):
        options = StrategyOptions(native_operators=frozenset({"soundex"}))
        assert get_strategy("soundex").generate_patterns("smith", options) == [
            NativeHint("soundex", "smith")
        ]

    def test_fallback_patterns(self):
        t = templates(get_strategy("soundex").generate_patterns("philip"))
        assert t[:3] == ["%philip%", "p%", "phi%"]
        assert "%filip%" in t
        assert "%phlp%" in t  # consonant skeleton

    def test_both_directions_of_pairs(self):
        assert ("c", "k") in PHONETIC_SUBSTITUTIONS
        assert ("k", "c") in PHONETIC_SUBSTITUTIONS
        t = templates(get_strategy("soundex").generate_patterns("kack"))
        assert "%cacc%" in t  # k -> c
        assert "%kakk%" in t  # c -> k
        assert "%kak%" in t  # ck -> k

    def test_tiers(self):
        tiers = get_strategy("soundex").score_tiers("name", "smith")
        assert [(r.pattern.template, r.score) for r in tiers] == [("%smith%", 50)]


class TestTrigramStrategy:
    def test_term_trigrams(self):
        assert term_trigrams("john") == ["jo", "joh", "ohn", "hn"]

    def test_patterns_limited(self):
        options = StrategyOptions(trigram_limit=4)
        t = templates(get_strategy("trigram").generate_patterns("johnathan", options))
        assert t == ["%johnathan%", "%jo%", "%joh%", "%ohn%"]

    def test_native(self):
        options = StrategyOptions(min_similarity=0.4, native_operators=frozenset({"similarity"}))
        assert get_strategy("trigram").generate_patterns("john", options) == [
            NativeHint("similarity", "john", 0.4)
        ]

    def test_tiers(self):
        tiers = get_strategy("trigram").score_tiers("name", "johnathan")
        assert len(tiers) == 5
        assert all(r.score == 20 for r in tiers)


class TestSimpleStrategy:
    def test_single_pattern(self):
        assert templates(get_strategy("simple").generate_patterns("john doe")) == ["%john doe%"]

    def test_short_term(self):
        assert templates(get_strategy("simple").generate_patterns("jo")) == ["%jo%"]
