"""Collaborator interfaces used by the batch migrations.

The runner and the sweeper only ever talk to these protocols, so the same
migration logic runs against the SQL adapters in ``services.sql`` or any
other object with the same methods.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Callable, Protocol, runtime_checkable

from activity_migrator.types import Activity, NotificationStatusRecord, SourceRow

# A sink for human-readable progress lines (``click.echo``, ``print``, ...).
ProgressReporter = Callable[[str], None]


@runtime_checkable
class RowSource(Protocol):
    """Count and page through the (activity, recipient, status) rows to migrate."""

    def count(self) -> int:
        """Return the number of qualifying rows."""
        ...

    def fetch(self, offset: int, limit: int) -> list[SourceRow]:
        """Return one stable page of qualifying rows."""
        ...


@runtime_checkable
class StatusSink(Protocol):
    """The ``activity_notification_status`` junction table."""

    def insert(self, rows: Iterable[NotificationStatusRecord]) -> int:
        """Bulk insert rows, returning how many were written."""
        ...

    def delete_by_ids(self, activity_ids: Iterable[int]) -> int:
        """Delete every row for the given activity ids; absent ids are ignored."""
        ...

    def activity_ids(self) -> list[int]:
        """Return the distinct activity ids currently present, ordered."""
        ...


@runtime_checkable
class EntityResolver(Protocol):
    """Load activity entities by id."""

    def load(self, activity_id: int) -> Activity | None:
        ...


@runtime_checkable
class EntityStore(Protocol):
    """Primary storage of activity entities."""

    def delete(self, activities: Mapping[int, Activity]) -> None:
        """Delete the given entities; ids that are already gone are ignored."""
        ...
