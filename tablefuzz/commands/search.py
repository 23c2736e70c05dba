"""Search a database table with typo-tolerant matching."""

from __future__ import annotations

from pathlib import Path

import click

from tablefuzz.cli import Context, pass_context
from tablefuzz.commands._shared import (
    EXIT_SEARCH_ERROR,
    EXIT_SUCCESS,
    builder_for,
    open_backend,
    parse_columns,
    parse_where,
    print_results,
    results_to_json,
)
from tablefuzz.exceptions import TableFuzzError
from tablefuzz.search.engine import SearchEngine
from tablefuzz.search.query import SearchQuery
from tablefuzz.search.strategies import SUPPORTED_ALGORITHMS
from tablefuzz.utils.output import console, create_table, debug, error, info, verbose


@click.command("search")
@click.argument("database", type=click.Path(path_type=Path))
@click.argument("table")
@click.argument("term", nargs=-1)
@click.option(
    "--column",
    "-C",
    "columns",
    multiple=True,
    help="Column to search, optionally weighted as name:weight (repeatable). "
    "Detected from the schema when omitted.",
)
@click.option(
    "--algorithm",
    "-a",
    default=None,
    help=f"Matching algorithm ({', '.join(SUPPORTED_ALGORITHMS)})",
)
@click.option("--preset", "-p", default=None, help="Named preset from the config file")
@click.option("--typo", "-t", type=int, default=None, help="Typo tolerance (0-5)")
@click.option("--fallback", "-F", multiple=True, help="Fallback algorithm (repeatable)")
@click.option("--match-all", is_flag=True, default=False, help="Every word must match")
@click.option("--native", is_flag=True, default=None, help="Use native database functions")
@click.option(
    "--where",
    "-w",
    "where",
    multiple=True,
    help="Filter as FIELD<op>VALUE, e.g. status=active or price<50 (repeatable)",
)
@click.option("--limit", "-l", type=int, default=15, show_default=True, help="Results per page")
@click.option("--page", type=int, default=1, show_default=True, help="1-based result page")
@click.option("--highlight", is_flag=True, default=None, help="Mark matched text in results")
@click.option("--facet", "facets", multiple=True, help="Show value counts for a column")
@click.option(
    "--suggest/--no-suggest",
    default=True,
    show_default=True,
    help="Offer spelling suggestions when nothing matches",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)
@pass_context
def cli(
    ctx: Context,
    database: Path,
    table: str,
    term: tuple[str, ...],
    columns: tuple[str, ...],
    algorithm: str | None,
    preset: str | None,
    typo: int | None,
    fallback: tuple[str, ...],
    match_all: bool,
    native: bool | None,
    where: tuple[str, ...],
    limit: int,
    page: int,
    highlight: bool | None,
    facets: tuple[str, ...],
    suggest: bool,
    output_format: str,
) -> None:
    """Search TABLE of the SQLite DATABASE for TERM.

    Results are ranked by how well each searched column matches: exact
    matches first, then prefixes, substrings and fuzzy matches, scaled by
    the column weight.

    \b
    Examples:
      tablefuzz search app.db users jhon
      tablefuzz search app.db users jhon -C name:10 -C email:5
      tablefuzz search app.db posts "laravel tips" --preset blog --match-all
      tablefuzz search app.db products iphon -a levenshtein -F soundex
      tablefuzz search app.db products shoe -w "price<50" --facet brand
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_SEARCH_ERROR)

    term_string = " ".join(term)
    weights = parse_columns(columns)
    filters = parse_where(where)
    backend = open_backend(database, table)

    try:
        builder = builder_for(
            config,
            backend,
            preset,
            weights,
            algorithm=algorithm,
            typo_tolerance=typo,
            fallback=list(fallback) or None,
            match_mode="all" if match_all else None,
            tokenize=True if match_all else None,
            use_native=native,
            highlight=highlight,
        )
        builder.search(term_string).page(page, limit)
        for field_name, operator, value in filters:
            builder.where(field_name, operator, value)
        if facets:
            builder.facets(*facets)
        query = builder.build()

        engine = SearchEngine(backend)
        verbose(f"Searching {table}.{', '.join(query.column_names)} with {query.algorithm}")
        debug(f"Processed term {query.processed_term!r}, weights {query.weights}")

        used, results = engine.search_with_fallback(query)
        if used != query.algorithm:
            info(f"No results with {query.algorithm}, showing {used} matches")

        if output_format == "json":
            click.echo(results_to_json(results, used))
            raise SystemExit(EXIT_SUCCESS)

        if not results:
            info(f"No results for: {term_string}")
            if suggest and query.processed_term:
                _print_suggestions(engine, query)
            raise SystemExit(EXIT_SUCCESS)

        total = engine.count(query)
        title = f"Search: {term_string} ({total} matches, page {page})"
        print_results(results, query.column_names, title)

        for column, counts in engine.facets(query).items():
            _print_facet(column, counts)

    except TableFuzzError as e:
        error(str(e))
        raise SystemExit(EXIT_SEARCH_ERROR)

    raise SystemExit(EXIT_SUCCESS)


def _print_suggestions(engine: SearchEngine, query: SearchQuery) -> None:
    """Print did-you-mean corrections and completions for a term with no matches."""
    corrections = engine.did_you_mean(query)
    if corrections:
        options = ", ".join(f"{s.term} ({s.confidence:.0%})" for s in corrections)
        console.print(f"Did you mean: {options}")
    completions = engine.suggest(query)
    if completions:
        console.print(f"Suggestions: {', '.join(completions)}")


def _print_facet(column: str, counts: dict) -> None:
    table = create_table(title=f"Facet: {column}", show_header=True, header_style="bold")
    table.add_column("Value")
    table.add_column("Count", justify="right")
    for value, n in sorted(counts.items(), key=lambda item: (-item[1], str(item[0]))):
        table.add_row("" if value is None else str(value), str(n))
    console.print(table)
