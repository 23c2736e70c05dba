"""Unit tests for relevance scoring and highlighting."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tablefuzz.search.highlight import highlight_record, highlight_text
from tablefuzz.search.query import ScoringWeights, SearchBuilder
from tablefuzz.search.scoring import RelevanceScorer, recency_factor
from tablefuzz.utils.matching import MatchTier

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def scorer(term: str = "john", **kwargs) -> RelevanceScorer:
    builder = SearchBuilder(term).in_columns(kwargs.pop("columns", {"name": 10}))
    for name, value in kwargs.items():
        args = value if isinstance(value, tuple) else (value,)
        getattr(builder, name)(*args)
    return RelevanceScorer(builder.build(), now=NOW)


class TestColumnScore:
    def test_tiers(self):
        s = scorer()
        assert s.column_score("name", 10, "John").score == 1000
        assert s.column_score("name", 10, "John Doe").score == 500
        assert s.column_score("name", 10, "Big John").score == 250
        assert s.column_score("name", 10, "Jhon").score == 40  # (10 - 3 * 2) * 10
        assert s.column_score("name", 10, "Mary").score == 0

    def test_fuzzy_tier_and_distance(self):
        cs = scorer("jhn").column_score("name", 10, "Jon Snow")
        assert cs.tier is MatchTier.FUZZY
        assert cs.distance == 1
        assert cs.score == 70

    def test_null_value(self):
        assert scorer().column_score("name", 10, None).tier is MatchTier.NONE

    def test_prefix_boost(self):
        s = scorer(prefix_boost=2.0)
        assert s.column_score("name", 1, "Johnny").score == 100

    def test_custom_weights(self):
        weights = ScoringWeights(exact=7, prefix=5, contains=3, fuzzy=2, fuzzy_penalty=1)
        s = scorer(scoring=weights)
        assert s.column_score("name", 1, "john").score == 7
        assert s.column_score("name", 1, "jhon").score == 0  # max(0, 2 - 1 * 2)

    def test_accent_insensitive_values(self):
        s = scorer("jose", accent_insensitive=True)
        assert s.column_score("name", 1, "José").tier is MatchTier.EXACT

    def test_tolerance(self):
        assert scorer(typo_tolerance=1).column_score("name", 1, "Jhon").tier is MatchTier.NONE


class TestScore:
    def test_sums_columns(self):
        s = scorer(columns={"name": 10, "email": 5})
        result = s.score({"name": "John", "email": "john"})
        assert result.score == 1500

    def test_breakdown_only_in_debug(self):
        assert scorer().score({"name": "John"}).column_scores is None
        result = scorer(debug=True).score({"name": "John"})
        assert [c.column for c in result.column_scores] == ["name"]

    def test_custom_score(self):
        s = scorer(custom_score=lambda record, score: score + record["votes"])
        assert s.score({"name": "John", "votes": 7}).score == 1007

    def test_recency_boost(self):
        s = scorer(boost_recent=(2.0, "created_at", 10))
        fresh = s.score({"name": "John", "created_at": NOW.isoformat()})
        stale = s.score({"name": "John", "created_at": "2020-01-01T00:00:00"})
        assert fresh.score == pytest.approx(2000)
        assert stale.score == 1000

    def test_bad_recency_date(self):
        s = scorer(boost_recent=(2.0, "created_at", 10))
        assert s.score({"name": "John", "created_at": "not a date"}).score == 1000


class TestRank:
    RECORDS = [
        {"id": 3, "name": "Big John"},
        {"id": 2, "name": "John"},
        {"id": 1, "name": "Mary"},
        {"id": 0, "name": "John"},
    ]

    def test_descending_score_ties_keep_order(self):
        ranked = scorer().rank(self.RECORDS)
        assert [r.record["id"] for r in ranked] == [2, 0, 3, 1]
        assert [r.position for r in ranked] == [1, 3, 0, 2]

    def test_stable_ranking_by_identity(self):
        ranked = scorer(stable_ranking="id").rank(self.RECORDS)
        assert [r.record["id"] for r in ranked] == [0, 2, 3, 1]

    def test_without_relevance_keeps_order(self):
        ranked = scorer(with_relevance=False).rank(self.RECORDS)
        assert [r.record["id"] for r in ranked] == [3, 2, 1, 0]
        assert all(r.score == 0 for r in ranked)

    def test_explicit_sort_keeps_backend_order(self):
        ranked = scorer(order_by="id").rank(self.RECORDS)
        assert [r.record["id"] for r in ranked] == [3, 2, 1, 0]
        assert ranked[1].score == 1000


class TestRecencyFactor:
    def test_linear_decay(self):
        five_days = NOW - timedelta(days=5)
        assert recency_factor(five_days, 2.0, 10, NOW) == pytest.approx(1.5)

    def test_too_old(self):
        assert recency_factor(NOW - timedelta(days=30), 2.0, 10, NOW) == 1.0

    def test_epoch_seconds(self):
        assert recency_factor(NOW.timestamp(), 1.5, 30, NOW) == pytest.approx(1.5)

    def test_missing(self):
        assert recency_factor(None, 2.0, 10, NOW) == 1.0

    def test_unparseable(self):
        assert recency_factor("yesterday-ish", 2.0, 10, NOW) == 1.0


class TestHighlight:
    def test_wraps_case_insensitively(self):
        assert highlight_text("John Doe", ["john"], "<em>", "</em>") == "<em>John</em> Doe"

    def test_longest_first(self):
        text = highlight_text("johnny john", ["john", "johnny"], "[", "]")
        assert text == "[johnny] [john]"

    def test_regex_characters_escaped(self):
        assert highlight_text("c++ guide", ["c++"], "<b>", "</b>") == "<b>c++</b> guide"

    def test_no_terms(self):
        assert highlight_text("John", [], "<em>", "</em>") == "John"

    def test_record(self):
        record = {"name": "John Doe", "email": None}
        assert highlight_record(record, ["name", "email"], ["doe"], "<em>", "</em>") == {
            "name": "John <em>Doe</em>",
            "email": "",
        }
