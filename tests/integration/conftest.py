"""Integration test fixtures: the full CLI against a SQLite file."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from tablefuzz.cli import cli


@pytest.fixture
def invoke(temp_dir: Path, sample_db: Path) -> Callable[..., Result]:
    """Run a tablefuzz command with defaults for config and ``{db}`` in arguments."""
    runner = CliRunner()
    config = temp_dir / "missing.toml"

    def _invoke(*args: str, config_path: Path | None = None) -> Result:
        argv = [a.replace("{db}", str(sample_db)) for a in args]
        return runner.invoke(cli, ["--quiet", "--config", str(config_path or config), *argv])

    return _invoke
