"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from tablefuzz.db.memory import InMemoryBackend

if TYPE_CHECKING:
    from collections.abc import Generator


USERS: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "John Doe",
        "email": "john@example.com",
        "status": "active",
        "created_at": "2024-01-10T09:00:00",
    },
    {
        "id": 2,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "status": "inactive",
        "created_at": "2023-06-01T12:00:00",
    },
    {
        "id": 3,
        "name": "Jon Snow",
        "email": "snow@wall.org",
        "status": "active",
        "created_at": "2024-02-20T18:30:00",
    },
]

PRODUCTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "iPhone 15",
        "description": "Apple smartphone",
        "brand": "Apple",
        "price": 999,
    },
    {
        "id": 2,
        "name": "Galaxy S24",
        "description": "Samsung phone",
        "brand": "Samsung",
        "price": 899,
    },
    {
        "id": 3,
        "name": "Pixel 8",
        "description": "Google phone",
        "brand": "Google",
        "price": 699,
    },
    {
        "id": 4,
        "name": "Phone Case",
        "description": "Protective case",
        "brand": "Generic",
        "price": 19,
    },
]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample config file."""
    config_path = temp_dir / "config.toml"
    config_path.write_text("""[search]
default_algorithm = "levenshtein"
min_search_length = 3

[typo_tolerance]
max_distance = 1

[scoring]
exact_match = 200

[synonyms]
laptop = ["notebook"]
groups = [["tv", "television"]]

[display]
colored_output = false

[presets.people]
columns = { name = 10, email = 5 }
algorithm = "fuzzy"
typo_tolerance = 2
""")
    return config_path


@pytest.fixture
def users_backend() -> InMemoryBackend:
    """In-memory backend over the sample users."""
    return InMemoryBackend([dict(u) for u in USERS])


@pytest.fixture
def products_backend() -> InMemoryBackend:
    """In-memory backend over the sample products."""
    return InMemoryBackend([dict(p) for p in PRODUCTS])


def _create_table(conn: sqlite3.Connection, name: str, rows: list[dict[str, Any]]) -> None:
    columns = list(rows[0])
    defs = ", ".join(
        f"{c} INTEGER PRIMARY KEY" if c == "id" else f"{c} {_sql_type(rows[0][c])}" for c in columns
    )
    conn.execute(f"CREATE TABLE {name} ({defs})")
    placeholders = ", ".join("?" for _ in columns)
    conn.executemany(
        f"INSERT INTO {name} ({', '.join(columns)}) VALUES ({placeholders})",
        [tuple(r[c] for c in columns) for r in rows],
    )


def _sql_type(value: Any) -> str:
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "REAL"
    return "TEXT"


@pytest.fixture
def sample_db(temp_dir: Path) -> Path:
    """SQLite database with ``users`` and ``products`` tables."""
    db_path = temp_dir / "app.db"
    conn = sqlite3.connect(db_path)
    try:
        _create_table(conn, "users", USERS)
        _create_table(conn, "products", PRODUCTS)
        conn.commit()
    finally:
        conn.close()
    return db_path
