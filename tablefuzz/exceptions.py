"""Exception hierarchy for tablefuzz."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class TableFuzzError(Exception):
    """Base exception for all tablefuzz errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all tablefuzz errors with
    a single except clause.
    """

    pass


# Search Errors
class SearchError(TableFuzzError):
    """Errors detected while building or running a search."""

    pass


class EmptySearchTermError(SearchError):
    """Search term is empty after processing and empty searches are disabled."""

    def __init__(self, term: str = "") -> None:
        self.term = term
        super().__init__(
            "Search term cannot be empty. Enable allow_empty to match all records."
        )


class InvalidAlgorithmError(SearchError):
    """Unknown matching algorithm requested."""

    def __init__(self, algorithm: str, supported: Iterable[str]) -> None:
        self.algorithm = algorithm
        self.supported = tuple(supported)
        super().__init__(
            f"Invalid search algorithm '{algorithm}'. "
            f"Supported algorithms are: {', '.join(self.supported)}"
        )


class InvalidConfigurationError(SearchError):
    """Search configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration for '{key}': {reason}")


class NoSearchableColumnsError(SearchError):
    """Query was built without any searchable columns."""

    def __init__(self, entity: str | None = None) -> None:
        self.entity = entity
        if entity:
            message = f"No searchable columns found for '{entity}'"
        else:
            message = "No searchable columns configured"
        super().__init__(f"{message}. Pass columns explicitly or define searchable columns.")


# Configuration Errors
class ConfigError(TableFuzzError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


class PresetNotFoundError(ConfigError):
    """Named search preset is not defined."""

    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        self.available = tuple(available)
        super().__init__(
            f"Unknown preset '{name}'. Available presets: {', '.join(self.available) or 'none'}"
        )


# Database Errors
class DatabaseError(TableFuzzError):
    """Storage backend errors."""

    pass


class DatabaseNotFoundError(DatabaseError):
    """Database file doesn't exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Database not found: {path}")


class TableNotFoundError(DatabaseError):
    """Table doesn't exist in the database."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table not found: {table}")
