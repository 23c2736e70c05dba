"""Searchable column detection from a table's schema."""

from __future__ import annotations

from tablefuzz.db.backend import SchemaRegistry
from tablefuzz.exceptions import NoSearchableColumnsError

# Well-known text columns and their default weights, highest first.
PRIORITY_COLUMNS: dict[str, float] = {
    "name": 10,
    "title": 10,
    "email": 8,
    "username": 8,
    "first_name": 7,
    "last_name": 7,
    "sku": 6,
    "code": 6,
    "description": 5,
    "content": 5,
    "body": 5,
    "bio": 3,
    "summary": 3,
    "excerpt": 3,
    "slug": 2,
}

EXCLUDED_COLUMNS = frozenset(
    {"id", "password", "remember_token", "created_at", "updated_at", "deleted_at"}
)


def detect_columns(
    registry: SchemaRegistry, entity: str, max_fallback: int = 5
) -> dict[str, float]:
    """Guess weighted search columns for ``entity``.

    Known column names get their priority weight. Without any, up to
    ``max_fallback`` other columns (alphabetically, skipping ids, secrets
    and timestamps) get weight 1.

    Raises:
        NoSearchableColumnsError: If no usable column exists.
    """
    available = registry.list_columns(entity)
    columns = {col: w for col, w in PRIORITY_COLUMNS.items() if col in available}
    if not columns:
        rest = sorted(c for c in available if c not in EXCLUDED_COLUMNS)
        columns = dict.fromkeys(rest[:max_fallback], 1.0)
    if not columns:
        raise NoSearchableColumnsError(entity)
    return columns
