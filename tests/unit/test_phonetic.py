"""Unit tests for soundex and trigram helpers."""

from __future__ import annotations

import pytest

from tablefuzz.utils.phonetic import soundex, trigram_similarity, trigrams


class TestSoundex:
    @pytest.mark.parametrize(
        ("word", "code"),
        [
            ("Robert", "R163"),
            ("Rupert", "R163"),
            ("Tymczak", "T522"),
            ("Pfister", "P236"),
            ("Ashcraft", "A261"),
            ("Honeyman", "H555"),
            ("Lee", "L000"),
        ],
    )
    def test_codes(self, word, code):
        assert soundex(word) == code

    def test_no_letters(self):
        assert soundex("") == ""
        assert soundex("1234") == ""

    def test_case_insensitive(self):
        assert soundex("smith") == soundex("SMITH") == "S530"


class TestTrigrams:
    def test_padding(self):
        assert trigrams("cat") == {"  c", " ca", "cat", "at "}

    def test_words_separately(self):
        assert "t d" not in trigrams("cat dog")
        assert "  d" in trigrams("cat dog")

    def test_similarity_identical(self):
        assert trigram_similarity("cat", "CAT") == 1.0

    def test_similarity_disjoint(self):
        assert trigram_similarity("cat", "dog") == 0.0

    def test_similarity_partial(self):
        value = trigram_similarity("jonathan", "johnathan")
        assert 0.0 < value < 1.0

    def test_similarity_empty(self):
        assert trigram_similarity("", "cat") == 0.0
