"""Tests for the custom exception hierarchy."""

import pytest

from activity_migrator.exceptions import (
    CheckpointError,
    ConfigError,
    InvalidCursorError,
    MigrationLockedError,
    MigratorError,
    UnknownMigrationError,
)

EXCEPTION_CLASSES = [
    ConfigError,
    InvalidCursorError,
    CheckpointError,
    MigrationLockedError,
    UnknownMigrationError,
]


class TestExceptionHierarchy:
    """Tests for exception types, inheritance, and message handling."""

    @pytest.mark.parametrize("exc_class", EXCEPTION_CLASSES)
    def test_each_exception_is_caught_by_migrator_error(self, exc_class):
        with pytest.raises(MigratorError):
            raise exc_class("caught by base")

    @pytest.mark.parametrize("exc_class", EXCEPTION_CLASSES)
    def test_each_exception_inherits_from_migrator_error(self, exc_class):
        assert issubclass(exc_class, MigratorError)

    def test_migrator_error_inherits_from_exception(self):
        assert issubclass(MigratorError, Exception)

    @pytest.mark.parametrize("exc_class", [MigratorError, *EXCEPTION_CLASSES])
    def test_message_is_preserved(self, exc_class):
        msg = f"specific message for {exc_class.__name__}"
        with pytest.raises(exc_class, match=msg):
            raise exc_class(msg)

    def test_siblings_do_not_catch_each_other(self):
        with pytest.raises(ConfigError):
            try:
                raise ConfigError("bad config")
            except InvalidCursorError:
                pytest.fail("InvalidCursorError should not catch ConfigError")
