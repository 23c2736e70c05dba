"""Wrap matched fragments of field values in highlight tags."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any


def highlight_text(value: str, terms: Iterable[str], open_tag: str, close_tag: str) -> str:
    """Wrap every case-insensitive occurrence of any term in ``value``.

    Longer terms win where terms overlap.
    """
    words = sorted({t for t in terms if t}, key=len, reverse=True)
    if not words or not value:
        return value
    pattern = re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)
    return pattern.sub(lambda m: f"{open_tag}{m.group(0)}{close_tag}", value)


def highlight_record(
    record: Any,
    columns: Iterable[str],
    terms: Iterable[str],
    open_tag: str,
    close_tag: str,
) -> dict[str, str]:
    """Highlighted copies of the given columns of a record."""
    terms = list(terms)
    highlighted: dict[str, str] = {}
    for column in columns:
        value = record.get(column)
        text = "" if value is None else str(value)
        highlighted[column] = highlight_text(text, terms, open_tag, close_tag)
    return highlighted
