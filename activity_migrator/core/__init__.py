"""Core migration logic including the cursor, migrations and scheduling."""

__all__ = [
    "checkpoint",
    "config",
    "cursor",
    "migration_runner",
    "migrator",
    "orphan_sweeper",
    "scheduler",
]
