"""Search term normalization: unicode, accents, stop words, tokens, synonyms."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Fixed tables
# ---------------------------------------------------------------------------

_MULTI_SPACE = re.compile(r"\s+")

_ACCENT_GROUPS = {
    "a": "àáâãäå",
    "e": "èéêë",
    "i": "ìíîï",
    "o": "òóôõöø",
    "u": "ùúûü",
    "y": "ýÿ",
    "n": "ñ",
    "c": "ç",
    "A": "ÀÁÂÃÄÅ",
    "E": "ÈÉÊË",
    "I": "ÌÍÎÏ",
    "O": "ÒÓÔÕÖØ",
    "U": "ÙÚÛÜ",
    "Y": "Ý",
    "N": "Ñ",
    "C": "Ç",
}

ACCENT_TABLE = str.maketrans(
    {accented: base for base, group in _ACCENT_GROUPS.items() for accented in group} | {"ß": "ss"}
)

DEFAULT_STOP_WORDS: dict[str, frozenset[str]] = {
    "en": frozenset(
        "the a an and or but in on at to for of is it be as was with that have this will "
        "from they we been has her she he him his my your our their".split()
    ),
    "de": frozenset(
        "der die das und oder aber in auf an zu für von ist es sein als war mit dass haben "
        "dies wird aus sie wir ich du er ihr mein dein unser".split()
    ),
    "fr": frozenset(
        "le la les un une des et ou mais dans sur à pour de est ce être comme était avec que "
        "avoir ceci sera ils nous je tu il elle son mon ton notre".split()
    ),
    "es": frozenset(
        "el la los las un una y o pero en sobre a para de es ser como era con que tener esto "
        "será ellos nosotros yo tú él ella su mi tu nuestro".split()
    ),
}


def stop_words_for(locale: str) -> frozenset[str]:
    """Return the built-in stop words for a locale (empty for unknown locales)."""
    return DEFAULT_STOP_WORDS.get(locale.lower(), frozenset())


# ---------------------------------------------------------------------------
# Term processing
# ---------------------------------------------------------------------------


def fold_accents(s: str) -> str:
    """Replace accented Latin letters with their base letter."""
    return s.translate(ACCENT_TABLE)


def remove_stop_words(s: str, stop_words: Iterable[str]) -> str:
    """Drop whitespace-separated tokens whose lowercase form is a stop word."""
    stops = {w.lower() for w in stop_words}
    if not stops:
        return s
    return " ".join(word for word in s.split() if word.lower() not in stops)


@dataclass(frozen=True)
class TermProcessor:
    """Normalization pipeline applied to a raw search term.

    Steps run in a fixed order: NFC normalization, accent folding,
    stop-word removal, trim. The result may be empty; deciding what an
    empty term means is left to the caller.
    """

    unicode_normalize: bool = False
    accent_insensitive: bool = False
    stop_words: frozenset[str] = frozenset()

    def process(self, term: str) -> str:
        if self.unicode_normalize:
            term = unicodedata.normalize("NFC", term)
        if self.accent_insensitive:
            term = fold_accents(term)
        if self.stop_words:
            term = remove_stop_words(term, self.stop_words)
        return term.strip()

    def normalize_value(self, value: str) -> str:
        """Normalize a stored field value for comparison with a processed term."""
        if self.unicode_normalize:
            value = unicodedata.normalize("NFC", value)
        if self.accent_insensitive:
            value = fold_accents(value)
        return _MULTI_SPACE.sub(" ", value.lower().strip())


# ---------------------------------------------------------------------------
# Tokens and synonyms
# ---------------------------------------------------------------------------


def tokenize(term: str) -> list[str]:
    """Split a term into whitespace-separated words."""
    return term.split()


def expand_synonyms(
    token: str,
    synonyms: Mapping[str, Sequence[str]] | None = None,
    groups: Sequence[Sequence[str]] | None = None,
) -> list[str]:
    """Expand a token with its synonyms.

    Lookup is case-insensitive. The result starts with the token itself,
    followed by its direct synonyms and the members of every group that
    contains it, without duplicates.
    """
    key = token.lower()
    expanded = [token]
    seen = {key}

    def _add(word: str) -> None:
        if word.lower() not in seen:
            seen.add(word.lower())
            expanded.append(word)

    for name, words in (synonyms or {}).items():
        if name.lower() == key:
            for word in words:
                _add(word)

    for group in groups or ():
        if key in {w.lower() for w in group}:
            for word in group:
                _add(word)

    return expanded
