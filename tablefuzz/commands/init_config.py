"""Initialize configuration file for tablefuzz."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from tablefuzz.cli import Context, pass_context
from tablefuzz.config import get_default_config_path
from tablefuzz.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("tablefuzz").joinpath("config.example.toml").read_text()


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/tablefuzz/config.toml)",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None) -> None:
    """Create a new configuration file with default settings.

    The generated file documents every option, including the search
    defaults, scoring weights and presets.

    \b
    Examples:
      tablefuzz init-config
      tablefuzz init-config --output ./tablefuzz.toml
      tablefuzz init-config --force
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    try:
        config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        config_path.write_text(_load_example_config())
        config_path.chmod(0o600)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    info("Edit this file to customize your settings.")
