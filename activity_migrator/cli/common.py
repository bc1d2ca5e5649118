"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
from typing import Callable

import click
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

import activity_migrator
from activity_migrator.exceptions import MigratorError
from activity_migrator.utils.logging import log_with_context

# ---------------------------------------------------------------------------
# Shared option decorator
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across multiple subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--config",
        default="config.yaml",
        show_default=True,
        help="Path to config YAML",
    )(f)
    f = click.option(
        "--checkpoint_dir",
        default=None,
        help="Directory holding migration checkpoints (overrides config)",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging and progress lines",
    )(f)
    return f


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(
    version=activity_migrator.__version__, prog_name="activity-migrator"
)
def cli() -> None:
    """Resumable batch migrations for activity notification status."""


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_database_error(e: SQLAlchemyError) -> None:
    """Handle database errors with specific messages.

    Args:
        e: The SQLAlchemy error to handle.
    """
    if isinstance(e, DBAPIError) and e.connection_invalidated:
        log_with_context(logging.ERROR, f"Lost the database connection: {e}")
    else:
        log_with_context(logging.ERROR, f"Database error during migration: {e}")
    log_with_context(
        logging.INFO,
        "Progress up to the last completed batch is checkpointed. "
        "Run the same command again to resume.",
    )


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, MigratorError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, SQLAlchemyError):
        handle_database_error(e)
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Migration interrupted by user.")
        log_with_context(
            logging.INFO, "Run the same command again to resume from the checkpoint."
        )
    else:
        log_with_context(logging.ERROR, f"Migration failed: {e}", exc_info=True)
