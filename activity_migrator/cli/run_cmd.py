"""CLI command handlers for running, inspecting and resetting migrations."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from activity_migrator.cli.common import cli, common_options, handle_exception
from activity_migrator.core.config import MigrationConfig, load_config
from activity_migrator.core.migrator import (
    MIGRATIONS,
    build_migration,
    create_db_engine,
    resolve_migration_names,
)
from activity_migrator.core.scheduler import MigrationScheduler
from activity_migrator.utils.logging import (
    log_with_context,
    setup_logger,
    setup_migration_logger,
)


def _make_scheduler(
    cfg: MigrationConfig, checkpoint_dir: str | None, show_progress: bool = False
) -> MigrationScheduler:
    return MigrationScheduler(
        Path(checkpoint_dir or cfg.checkpoint_dir), show_progress=show_progress
    )


# ---------------------------------------------------------------------------
# run subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.argument("migration")
@click.option(
    "--database_url",
    default=None,
    help="SQLAlchemy database URL (overrides config)",
)
@click.option(
    "--max_invocations",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many batches; the next run resumes from the checkpoint",
)
@click.option(
    "--log_dir",
    default=None,
    help="Write migration.log and per-migration logs to this directory",
)
@click.option(
    "--json_logs",
    is_flag=True,
    default=False,
    help="Write per-migration logs as JSON lines (requires --log_dir)",
)
def run(
    migration: str,
    config: str,
    checkpoint_dir: str | None,
    verbose: bool,
    database_url: str | None,
    max_invocations: int | None,
    log_dir: str | None,
    json_logs: bool,
) -> None:
    """Run MIGRATION (or 'all') until it finishes.

    Args:
        migration: Registered migration name, or ``all``.
        config: Path to config YAML.
        checkpoint_dir: Checkpoint directory override.
        verbose: Enable verbose console logging and progress lines.
        database_url: Database URL override.
        max_invocations: Upper bound on batches for this run.
        log_dir: Optional directory for log files.
        json_logs: Format per-migration log files as JSON lines.
    """
    setup_logger(verbose, log_dir)

    try:
        names = resolve_migration_names(migration)
        cfg = load_config(Path(config))
        engine = create_db_engine(cfg, database_url)
        scheduler = _make_scheduler(cfg, checkpoint_dir, show_progress=verbose)
        reporter = click.echo if verbose else None

        for name in names:
            if log_dir:
                setup_migration_logger(log_dir, name, json_format=json_logs)
            result = scheduler.run(
                build_migration(name, engine, cfg, reporter),
                max_invocations=max_invocations,
            )
            if not result.finished:
                log_with_context(
                    logging.INFO,
                    f"{name} paused at {result.cursor.current}/{result.cursor.total} "
                    f"({result.cursor.fraction_done:.0%}); run again to resume",
                    migration=name,
                )
                break
            click.echo(f"{name}: done")
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


# ---------------------------------------------------------------------------
# status / reset / list subcommands
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@click.argument("migration", default="all")
def status(migration: str, config: str, checkpoint_dir: str | None, verbose: bool) -> None:
    """Show the checkpointed progress of MIGRATION (default: all)."""
    setup_logger(verbose)

    try:
        names = resolve_migration_names(migration)
        scheduler = _make_scheduler(load_config(Path(config)), checkpoint_dir)
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    for name in names:
        checkpoint = scheduler.status(name)
        if checkpoint is None:
            click.echo(f"{name}: no checkpoint")
            continue
        cursor = checkpoint.progress_cursor
        click.echo(
            f"{name}: {cursor.state.value} {cursor.current}/{cursor.total} "
            f"({cursor.fraction_done:.0%}), {checkpoint.invocations} invocations, "
            f"last updated {checkpoint.last_updated}"
        )


@cli.command()
@common_options
@click.argument("migration")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
def reset(
    migration: str, config: str, checkpoint_dir: str | None, verbose: bool, yes: bool
) -> None:
    """Discard the checkpoint of MIGRATION so it starts over."""
    setup_logger(verbose)

    try:
        names = resolve_migration_names(migration)
        scheduler = _make_scheduler(load_config(Path(config)), checkpoint_dir)
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    if not yes and not click.confirm(f"Discard progress of {', '.join(names)}?"):
        click.echo("Reset cancelled.")
        sys.exit(0)

    for name in names:
        scheduler.reset(name)
        click.echo(f"{name}: checkpoint cleared")


@cli.command("list")
def list_migrations() -> None:
    """List the available migrations in execution order."""
    for name, factory in MIGRATIONS.items():
        summary = (factory.__doc__ or "").strip().splitlines()[0]
        click.echo(f"{name}  {summary}")
