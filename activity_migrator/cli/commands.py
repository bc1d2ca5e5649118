#!/usr/bin/env python3
"""
Main execution module for the activity notification migration tool.

Importing the command modules registers their subcommands on the click group.
"""

from activity_migrator.cli import config_cmd, run_cmd  # noqa: F401
from activity_migrator.cli.common import cli, handle_exception

__all__ = ["cli", "handle_exception", "main"]


def main() -> None:
    """Entry point for the ``activity-migrator`` console script."""
    cli()


if __name__ == "__main__":
    main()
