"""Custom exception hierarchy for the activity notification migration tool."""


class MigratorError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigratorError):
    """Raised when configuration is invalid or missing."""


class InvalidCursorError(MigratorError):
    """Raised when a progress cursor violates its invariants."""


class CheckpointError(MigratorError):
    """Raised when a persisted checkpoint cannot be written."""


class MigrationLockedError(MigratorError):
    """Raised when another invocation of the same migration is in flight."""


class UnknownMigrationError(MigratorError):
    """Raised when a migration name is not registered."""
