"""
Registry of the activity notification migrations.

Wires each named migration to its SQL collaborators.  Migrations are listed
in the order they must run: the orphan sweep walks the junction table the
status consolidation fills.
"""

from __future__ import annotations

from typing import Callable, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from activity_migrator.constants import ORPHAN_SWEEP, STATUS_MIGRATION
from activity_migrator.core.config import MigrationConfig
from activity_migrator.core.migration_runner import ChunkedMigrationRunner
from activity_migrator.core.orphan_sweeper import OrphanSweeper
from activity_migrator.exceptions import ConfigError, UnknownMigrationError
from activity_migrator.services import schema
from activity_migrator.services.interfaces import ProgressReporter
from activity_migrator.services.sql import SqlActivityStore, SqlRowSource, SqlStatusSink

Migration = Union[ChunkedMigrationRunner, OrphanSweeper]
MigrationFactory = Callable[
    [Engine, MigrationConfig, Union[ProgressReporter, None]], Migration
]


def build_status_migration(
    engine: Engine,
    config: MigrationConfig,
    reporter: ProgressReporter | None = None,
) -> ChunkedMigrationRunner:
    """Status consolidation: entity-field tables -> activity_notification_status."""
    return ChunkedMigrationRunner(SqlRowSource(engine), SqlStatusSink(engine))


def build_orphan_sweep(
    engine: Engine,
    config: MigrationConfig,
    reporter: ProgressReporter | None = None,
) -> OrphanSweeper:
    """Orphan sweep over activity_notification_status."""
    related_tables = {
        target_type: schema.related_entity_table(spec.table, spec.id_column)
        for target_type, spec in config.related_entity_tables.items()
    }
    store = SqlActivityStore(engine, related_tables)
    return OrphanSweeper(
        SqlStatusSink(engine),
        resolver=store,
        entity_store=store,
        batch_size=config.activity_update_batch_size,
        reporter=reporter,
    )


MIGRATIONS: dict[str, MigrationFactory] = {
    STATUS_MIGRATION: build_status_migration,
    ORPHAN_SWEEP: build_orphan_sweep,
}


def resolve_migration_names(name: str) -> list[str]:
    """Expand ``all`` into every registered migration, in order."""
    if name == "all":
        return list(MIGRATIONS)
    if name not in MIGRATIONS:
        raise UnknownMigrationError(
            f"Unknown migration '{name}'. Available: {', '.join(MIGRATIONS)}, all"
        )
    return [name]


def build_migration(
    name: str,
    engine: Engine,
    config: MigrationConfig,
    reporter: ProgressReporter | None = None,
) -> Migration:
    """Instantiate the migration registered under ``name``."""
    try:
        factory = MIGRATIONS[name]
    except KeyError:
        raise UnknownMigrationError(f"Unknown migration '{name}'") from None
    return factory(engine, config, reporter)


def create_db_engine(config: MigrationConfig, database_url: str | None = None) -> Engine:
    """Create the SQLAlchemy engine, preferring an explicit URL over config."""
    url = database_url or config.database_url
    if not url:
        raise ConfigError(
            "No database URL configured. Pass --database_url or set database_url in the config."
        )
    return create_engine(url)
