"""Python versions of the native operators some SQL engines provide.

Used by the in-memory backend and registered as SQLite functions so that
native-operator hints can be evaluated where the engine lacks them.
"""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^0-9a-z]+")

_SOUNDEX_CODES = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}


def soundex(s: str) -> str:
    """American Soundex code of the ASCII letters in ``s`` (e.g. ``R163``).

    Returns an empty string when ``s`` contains no ASCII letters.
    """
    letters = [c for c in s.lower() if "a" <= c <= "z"]
    if not letters:
        return ""
    first = letters[0]
    code = [first.upper()]
    last = _SOUNDEX_CODES.get(first, "")
    for c in letters[1:]:
        digit = _SOUNDEX_CODES.get(c, "")
        if digit and digit != last:
            code.append(digit)
            if len(code) == 4:
                break
        # h and w do not separate letters with the same code
        if c not in "hw":
            last = digit
    return "".join(code).ljust(4, "0")


def trigrams(s: str) -> set[str]:
    """Word trigrams in the style of PostgreSQL's pg_trgm.

    Each alphanumeric word is padded with two leading and one trailing space.
    """
    grams: set[str] = set()
    for word in _NON_WORD.split(s.lower()):
        if not word:
            continue
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(a: str, b: str) -> float:
    """Shared-trigram ratio between two strings in [0, 1]."""
    ta = trigrams(a)
    tb = trigrams(b)
    if not ta or not tb:
        return 0.0
    shared = len(ta & tb)
    return shared / (len(ta) + len(tb) - shared)
