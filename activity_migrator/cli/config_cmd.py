"""CLI command handler for writing a starter config file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from activity_migrator.cli.common import cli
from activity_migrator.core.config import create_default_config
from activity_migrator.utils.logging import setup_logger

# ---------------------------------------------------------------------------
# init-config subcommand
# ---------------------------------------------------------------------------


@cli.command("init-config")
@click.option(
    "--config",
    default="config.yaml",
    show_default=True,
    help="Where to write the config YAML",
)
def init_config(config: str) -> None:
    """Write a default config file (never overwrites an existing one).

    Args:
        config: Path of the config YAML to create.
    """
    setup_logger()

    if not create_default_config(Path(config)):
        sys.exit(1)
    click.echo(f"Wrote {config}")
