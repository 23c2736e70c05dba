"""Helpers shared by the search, explain and benchmark commands."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import click
from rich.text import Text

from tablefuzz.config import Config
from tablefuzz.db.schema import detect_columns
from tablefuzz.db.sql import SQLAlchemyBackend, SQLAlchemySchemaRegistry
from tablefuzz.exceptions import DatabaseError
from tablefuzz.search.query import SearchBuilder
from tablefuzz.search.scoring import ScoredResult
from tablefuzz.utils.output import console, create_table, error

EXIT_SUCCESS = 0
EXIT_SEARCH_ERROR = 1
EXIT_DATABASE_ERROR = 2

_WHERE_RE = re.compile(r"^\s*([A-Za-z_][\w.]*)\s*(!=|<=|>=|=|<|>)\s*(.*)$")


def parse_columns(specs: tuple[str, ...]) -> dict[str, float]:
    """Parse ``name`` or ``name:weight`` column options into a weight map."""
    columns: dict[str, float] = {}
    for spec in specs:
        name, _, weight = spec.partition(":")
        name = name.strip()
        if not name:
            raise click.BadParameter(f"empty column name in '{spec}'", param_hint="--column")
        if weight:
            try:
                columns[name] = float(weight)
            except ValueError:
                raise click.BadParameter(
                    f"weight of '{name}' is not a number: {weight}", param_hint="--column"
                ) from None
        else:
            columns[name] = 1.0
    return columns


def _coerce(value: str) -> Any:
    """Interpret a filter value as int or float where it looks like one."""
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def parse_where(specs: tuple[str, ...]) -> list[tuple[str, str, Any]]:
    """Parse ``field<op>value`` filter options."""
    filters = []
    for spec in specs:
        match = _WHERE_RE.match(spec)
        if match is None:
            raise click.BadParameter(
                f"expected FIELD<op>VALUE with op one of = != < <= > >=, got '{spec}'",
                param_hint="--where",
            )
        field_name, operator, value = match.groups()
        filters.append((field_name, operator, _coerce(value.strip())))
    return filters


def open_backend(db_path: Path, table: str) -> SQLAlchemyBackend:
    """Open a table of a SQLite file, exiting with an error message on failure."""
    try:
        return SQLAlchemyBackend.from_sqlite(db_path, table)
    except DatabaseError as e:
        error(str(e))
        raise SystemExit(EXIT_DATABASE_ERROR)


def builder_for(
    config: Config,
    backend: SQLAlchemyBackend | None,
    preset: str | None,
    columns: dict[str, float],
    **overrides: Any,
) -> SearchBuilder:
    """Builder layered from config, preset and command-line overrides.

    Without explicit or preset columns, columns are detected from the
    table schema.
    """
    if not columns and backend is not None:
        preset_columns = config.presets.get(preset, {}).get("columns") if preset else None
        if not preset_columns:
            registry = SQLAlchemySchemaRegistry(backend.engine)
            columns = detect_columns(registry, backend.table.name)
    builder = SearchBuilder.from_config(config, preset, columns=columns or None, **overrides)
    if backend is not None:
        builder.searchable(col.name for col in backend.table.columns)
    return builder


def _cell(result: ScoredResult, column: str) -> Text:
    if result.highlights and column in result.highlights:
        return Text(result.highlights[column])
    value = result.get(column)
    return Text("" if value is None else str(value))


def print_results(results: list[ScoredResult], columns: list[str], title: str) -> None:
    """Print ranked results as a table with a score column."""
    table = create_table(title=title, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right", style="score")
    for column in columns:
        table.add_column(column, style="column" if column == columns[0] else None)

    for i, result in enumerate(results, 1):
        table.add_row(str(i), f"{result.score:g}", *(_cell(result, c) for c in columns))

    console.print(table)


def results_to_json(results: list[ScoredResult], algorithm: str) -> str:
    """Serialize ranked results for ``--format json``."""
    payload = {
        "algorithm": algorithm,
        "count": len(results),
        "results": [
            {
                "score": r.score,
                "record": dict(r.record),
                **({"highlights": r.highlights} if r.highlights else {}),
            }
            for r in results
        ],
    }
    return json.dumps(payload, indent=2, default=str)
