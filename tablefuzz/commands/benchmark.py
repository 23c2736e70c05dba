"""Measure search latency of one or more algorithms against a table."""

from __future__ import annotations

import dataclasses
import statistics
import time
import tracemalloc
from pathlib import Path

import click
from rich.progress import Progress, TaskID

from tablefuzz.cli import Context, pass_context
from tablefuzz.commands._shared import (
    EXIT_SEARCH_ERROR,
    EXIT_SUCCESS,
    builder_for,
    open_backend,
    parse_columns,
)
from tablefuzz.exceptions import TableFuzzError
from tablefuzz.search.ast_nodes import MatchEverything
from tablefuzz.search.engine import SearchEngine
from tablefuzz.search.query import SearchQuery
from tablefuzz.search.strategies import SUPPORTED_ALGORITHMS
from tablefuzz.utils.output import console, create_progress, create_table, error, info

BENCHMARK_LIMIT = 20


@dataclasses.dataclass
class BenchmarkResult:
    """Timings of repeated runs of one query."""

    algorithm: str
    timings: list[float]
    results: int
    peak_memory: int

    @property
    def average_ms(self) -> float:
        return statistics.fmean(self.timings) * 1000

    @property
    def min_ms(self) -> float:
        return min(self.timings) * 1000

    @property
    def max_ms(self) -> float:
        return max(self.timings) * 1000

    @property
    def queries_per_second(self) -> float:
        total = sum(self.timings)
        return len(self.timings) / total if total > 0 else 0.0


def rating(average_ms: float) -> str:
    """Rough verdict for an average query time."""
    if average_ms < 10:
        return "[success]excellent[/success]"
    if average_ms < 50:
        return "[info]good[/info]"
    if average_ms < 100:
        return "[warning]moderate[/warning]"
    return "[error]poor[/error]"


def run_benchmark(
    engine: SearchEngine,
    query: SearchQuery,
    iterations: int,
    progress: Progress | None = None,
    task: TaskID | None = None,
) -> BenchmarkResult:
    """Run ``query`` ``iterations`` times and collect timings."""
    timings: list[float] = []
    results = 0
    tracemalloc.start()
    try:
        for _ in range(iterations):
            start = time.perf_counter()
            results = len(engine.search(query))
            timings.append(time.perf_counter() - start)
            if progress is not None and task is not None:
                progress.advance(task)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    return BenchmarkResult(query.algorithm, timings, results, peak)


@click.command("benchmark")
@click.argument("database", type=click.Path(path_type=Path))
@click.argument("table")
@click.option("--term", default="test", show_default=True, help="Search term to benchmark")
@click.option(
    "--iterations",
    "-n",
    type=click.IntRange(min=1),
    default=100,
    show_default=True,
    help="Number of runs per algorithm",
)
@click.option(
    "--algorithm",
    "-a",
    "algorithms",
    multiple=True,
    help=f"Algorithm to benchmark, repeatable ({', '.join(SUPPORTED_ALGORITHMS)}; "
    "default: the configured algorithm)",
)
@click.option(
    "--column",
    "-C",
    "columns",
    multiple=True,
    help="Column to search, optionally weighted as name:weight (repeatable)",
)
@click.option("--preset", "-p", default=None, help="Named preset from the config file")
@pass_context
def cli(
    ctx: Context,
    database: Path,
    table: str,
    term: str,
    iterations: int,
    algorithms: tuple[str, ...],
    columns: tuple[str, ...],
    preset: str | None,
) -> None:
    """Benchmark search performance on TABLE of the SQLite DATABASE.

    Runs the same search repeatedly and reports average, minimum and
    maximum latency per algorithm.

    \b
    Examples:
      tablefuzz benchmark app.db users
      tablefuzz benchmark app.db users --term jhon -n 500
      tablefuzz benchmark app.db users -a fuzzy -a levenshtein -a trigram
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_SEARCH_ERROR)

    weights = parse_columns(columns)
    backend = open_backend(database, table)
    engine = SearchEngine(backend)

    try:
        builder = builder_for(config, backend, preset, weights)
        query = builder.search(term).limit(BENCHMARK_LIMIT).cache(None).build()
        queries = [query.with_algorithm(a) for a in algorithms] if algorithms else [query]
        total_records = backend.count(MatchEverything())

        info(f"Benchmarking '{term}' on {table} ({total_records} records, {iterations} runs)")

        measured: list[BenchmarkResult] = []
        with create_progress() as progress:
            for q in queries:
                task = progress.add_task(f"{q.algorithm}...", total=iterations)
                measured.append(run_benchmark(engine, q, iterations, progress, task))

    except TableFuzzError as e:
        error(str(e))
        raise SystemExit(EXIT_SEARCH_ERROR)

    table_out = create_table(title="Benchmark results", show_header=True, header_style="bold")
    table_out.add_column("Algorithm", style="bold")
    table_out.add_column("Results", justify="right")
    table_out.add_column("Avg (ms)", justify="right")
    table_out.add_column("Min (ms)", justify="right")
    table_out.add_column("Max (ms)", justify="right")
    table_out.add_column("Queries/s", justify="right")
    table_out.add_column("Peak memory", justify="right")
    table_out.add_column("Rating")

    for r in measured:
        table_out.add_row(
            r.algorithm,
            str(r.results),
            f"{r.average_ms:.2f}",
            f"{r.min_ms:.2f}",
            f"{r.max_ms:.2f}",
            f"{r.queries_per_second:.1f}",
            f"{r.peak_memory / 1024:.1f} KiB",
            rating(r.average_ms),
        )

    console.print(table_out)
    raise SystemExit(EXIT_SUCCESS)
