"""Storage backends the search engine runs against."""

from tablefuzz.db.backend import Record, SchemaRegistry, StorageBackend
from tablefuzz.db.memory import InMemoryBackend
from tablefuzz.db.schema import detect_columns
from tablefuzz.db.session import get_engine, register_sqlite_functions, reflect_table
from tablefuzz.db.sql import SQLAlchemyBackend, SQLAlchemySchemaRegistry

__all__ = [
    # Protocols
    "Record",
    "SchemaRegistry",
    "StorageBackend",
    # Backends
    "InMemoryBackend",
    "SQLAlchemyBackend",
    "SQLAlchemySchemaRegistry",
    # Engine setup
    "get_engine",
    "register_sqlite_functions",
    "reflect_table",
    "detect_columns",
]
