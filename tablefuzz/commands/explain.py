"""Show how a search term is expanded into patterns and scored."""

from __future__ import annotations

from pathlib import Path

import click
from rich.text import Text

from tablefuzz.cli import Context, pass_context
from tablefuzz.commands._shared import (
    EXIT_SEARCH_ERROR,
    EXIT_SUCCESS,
    builder_for,
    open_backend,
    parse_columns,
)
from tablefuzz.db.memory import InMemoryBackend
from tablefuzz.db.sql import SQLAlchemyBackend
from tablefuzz.exceptions import TableFuzzError
from tablefuzz.search.ast_nodes import describe
from tablefuzz.search.engine import Explanation, SearchEngine
from tablefuzz.search.strategies import SUPPORTED_ALGORITHMS
from tablefuzz.utils.matching import similarity_percentage
from tablefuzz.utils.output import console, create_table, error, info


@click.command("explain")
@click.argument("term", nargs=-1, required=True)
@click.option(
    "--db",
    "database",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite database to run the query against",
)
@click.option("--table", default=None, help="Table to search (required with --db)")
@click.option(
    "--column",
    "-C",
    "columns",
    multiple=True,
    help="Column to search, optionally weighted as name:weight (repeatable)",
)
@click.option(
    "--algorithm",
    "-a",
    default=None,
    help=f"Matching algorithm ({', '.join(SUPPORTED_ALGORITHMS)})",
)
@click.option("--preset", "-p", default=None, help="Named preset from the config file")
@click.option("--typo", "-t", type=int, default=None, help="Typo tolerance (0-5)")
@click.option("--match-all", is_flag=True, default=False, help="Every word must match")
@click.option("--native", is_flag=True, default=None, help="Use native database functions")
@click.option("--sql", "show_sql", is_flag=True, default=False, help="Print the generated SQL")
@click.option("--limit", "-l", type=int, default=15, show_default=True, help="Results to score")
@pass_context
def cli(
    ctx: Context,
    term: tuple[str, ...],
    database: Path | None,
    table: str | None,
    columns: tuple[str, ...],
    algorithm: str | None,
    preset: str | None,
    typo: int | None,
    match_all: bool,
    native: bool | None,
    show_sql: bool,
    limit: int,
) -> None:
    """Explain how TERM is searched.

    Prints the processed term, the generated match patterns and the
    resulting predicate. With --db and --table the query is also run and
    every result is shown with its per-column score breakdown.

    \b
    Examples:
      tablefuzz explain jhon -C name
      tablefuzz explain jhon -C name -a levenshtein --typo 1
      tablefuzz explain "php tips" --preset blog --match-all
      tablefuzz explain jhon --db app.db --table users --sql
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_SEARCH_ERROR)

    if (database is None) != (table is None):
        error("--db and --table must be given together")
        raise SystemExit(EXIT_SEARCH_ERROR)
    if show_sql and database is None:
        error("--sql needs a database", hint="Pass --db and --table")
        raise SystemExit(EXIT_SEARCH_ERROR)

    weights = parse_columns(columns)
    backend = open_backend(database, table) if database is not None else None

    try:
        builder = builder_for(
            config,
            backend,
            preset,
            weights,
            algorithm=algorithm,
            typo_tolerance=typo,
            match_mode="all" if match_all else None,
            tokenize=True if match_all else None,
            use_native=native,
        )
        query = builder.search(" ".join(term)).limit(limit).build()

        engine = SearchEngine(backend if backend is not None else InMemoryBackend([]))
        explanation = engine.explain(query, execute=backend is not None)

        _print_analytics(explanation)
        _print_patterns(explanation)
        console.print("[bold]Predicate[/bold]")
        console.print(Text(describe(explanation.predicate)))

        if show_sql and isinstance(backend, SQLAlchemyBackend):
            order = engine.conditions(query).order_by()
            console.print("[bold]SQL[/bold]")
            console.print(Text(backend.compile(explanation.predicate, order, limit)))

        if backend is not None:
            _print_breakdown(explanation)

    except TableFuzzError as e:
        error(str(e))
        raise SystemExit(EXIT_SEARCH_ERROR)

    raise SystemExit(EXIT_SUCCESS)


def _print_analytics(explanation: Explanation) -> None:
    table = create_table(title="Search analytics", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in explanation.analytics().items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v:g}" for k, v in value.items())
        elif isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "-"
        table.add_row(key, Text(str(value)))
    console.print(table)


def _print_patterns(explanation: Explanation) -> None:
    if not explanation.patterns:
        info("No patterns: the term is empty and matches every record")
        return
    console.print(f"[bold]Patterns[/bold] ({len(explanation.patterns)})")
    for i, pattern in enumerate(explanation.patterns, 1):
        console.print(f"  {i:>3}. ", Text(str(pattern), style="pattern"), sep="")


def _print_breakdown(explanation: Explanation) -> None:
    """Per-result, per-column scores of an executed explanation."""
    results = explanation.results
    info(f"{len(results)} results in {explanation.elapsed * 1000:.2f} ms")
    if not results:
        return

    term = explanation.processed_term
    table = create_table(title="Score breakdown", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Column", style="column")
    table.add_column("Value")
    table.add_column("Tier")
    table.add_column("Distance", justify="right")
    table.add_column("Similarity", justify="right")
    table.add_column("Score", justify="right", style="score")

    for i, result in enumerate(results, 1):
        for cs in result.column_scores or []:
            value = result.get(cs.column)
            text = "" if value is None else str(value)
            table.add_row(
                str(i),
                cs.column,
                Text(text),
                cs.tier.value,
                "" if cs.distance is None else str(cs.distance),
                f"{similarity_percentage(term.lower(), text.lower()):.1f}%",
                f"{cs.score:g}",
            )
        table.add_row("", "[bold]total[/bold]", "", "", "", "", f"[bold]{result.score:g}[/bold]")
    console.print(table)
