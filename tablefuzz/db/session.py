"""Engine creation and SQLite helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import sqlalchemy.engine
from sqlalchemy import MetaData, Table, create_engine, event
from sqlalchemy import inspect as sa_inspect

from tablefuzz.exceptions import DatabaseNotFoundError, TableNotFoundError
from tablefuzz.utils.matching import levenshtein_distance
from tablefuzz.utils.phonetic import soundex, trigram_similarity

log = logging.getLogger(__name__)


def get_engine(db_path: Path) -> sqlalchemy.engine.Engine:
    """Create SQLAlchemy engine for a SQLite database file.

    Args:
        db_path: Path to the SQLite database.

    Returns:
        SQLAlchemy engine.

    Raises:
        DatabaseNotFoundError: If database file doesn't exist.
    """
    db_path = Path(db_path).expanduser().resolve()

    if not db_path.exists():
        raise DatabaseNotFoundError(db_path)

    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={
            "timeout": 30,
            "check_same_thread": False,
        },
    )


def _sql_levenshtein(a: str | None, b: str | None) -> int | None:
    if a is None or b is None:
        return None
    return levenshtein_distance(str(a), str(b))


def _sql_soundex(s: str | None) -> str | None:
    if s is None:
        return None
    return soundex(str(s))


def _sql_similarity(a: str | None, b: str | None) -> float | None:
    if a is None or b is None:
        return None
    return trigram_similarity(str(a), str(b))


def register_sqlite_functions(engine: sqlalchemy.engine.Engine) -> None:
    """Provide ``levenshtein``, ``soundex`` and ``similarity`` on every SQLite connection."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record) -> None:
        dbapi_conn.create_function("levenshtein", 2, _sql_levenshtein, deterministic=True)
        dbapi_conn.create_function("soundex", 1, _sql_soundex, deterministic=True)
        dbapi_conn.create_function("similarity", 2, _sql_similarity, deterministic=True)

    log.debug("Registered fuzzy SQL functions on %s", engine.url)


def reflect_table(engine: sqlalchemy.engine.Engine, name: str) -> Table:
    """Load a table definition from the database.

    Raises:
        TableNotFoundError: If the table does not exist.
    """
    inspector = sa_inspect(engine)
    if name not in inspector.get_table_names():
        raise TableNotFoundError(name)
    return Table(name, MetaData(), autoload_with=engine)
