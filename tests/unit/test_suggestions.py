"""Unit tests for completions and spelling suggestions."""

from __future__ import annotations

from tablefuzz.db.memory import InMemoryBackend
from tablefuzz.search.ast_nodes import FieldFilter
from tablefuzz.search.suggestions import SuggestionEngine, confidence

ROWS = [
    {"title": "Laravel Tips", "status": "published"},
    {"title": "Laravel Testing Guide", "status": "published"},
    {"title": "Large Language Models", "status": "draft"},
    {"title": "Learning Python", "status": "published"},
    {"title": "Python Packaging", "status": "published"},
]


def engine(**kwargs) -> SuggestionEngine:
    return SuggestionEngine(InMemoryBackend([dict(r) for r in ROWS]), ["title"], **kwargs)


class TestSuggest:
    def test_completions(self):
        assert engine().suggest("lar") == [
            "Large",
            "Laravel",
            "Laravel Tips",
            "Laravel Testing Guide",
            "Large Language Models",
        ]

    def test_limit(self):
        assert engine().suggest("lar", limit=2) == ["Large", "Laravel"]

    def test_excludes_exact_term(self):
        assert "Python" not in engine().suggest("python")
        assert "Python Packaging" in engine().suggest("python")

    def test_filters_apply(self):
        published = engine(filters=[FieldFilter("status", "=", "published")])
        assert "Large" not in published.suggest("lar")

    def test_short_term(self):
        assert engine().suggest("l") == []


class TestDidYouMean:
    def test_corrects_typo(self):
        suggestions = engine().did_you_mean("pyhton")
        assert suggestions[0].term == "python"
        assert suggestions[0].distance == 2
        assert suggestions[0].confidence == 0.67

    def test_sorted_by_distance(self):
        suggestions = engine().did_you_mean("laravell")
        assert suggestions[0].term == "laravel"
        assert suggestions[0].distance == 1

    def test_exact_word_not_suggested(self):
        assert all(s.term != "laravel" for s in engine().did_you_mean("laravel"))

    def test_far_words_rejected(self):
        assert engine().did_you_mean("zzzzzz") == []

    def test_limit(self):
        assert len(engine().did_you_mean("tips", limit=1)) <= 1


class TestConfidence:
    def test_formula(self):
        assert confidence(1, "jon", "john") == 0.75
        assert confidence(0, "", "") == 0.0
