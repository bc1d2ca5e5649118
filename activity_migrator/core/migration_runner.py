"""
Chunked status consolidation migration.

Copies per-user notification status from the wide entity-field tables into
the ``activity_notification_status`` junction table, one fixed-size window of
rows per invocation.  The first invocation counts the qualifying rows; every
invocation (the first included) copies the window starting at the cursor's
``current`` offset and advances the cursor by the window length.
"""

from __future__ import annotations

import logging

from activity_migrator.constants import MIGRATION_CHUNK_SIZE, STATUS_MIGRATION
from activity_migrator.core.cursor import ProgressCursor
from activity_migrator.services.interfaces import RowSource, StatusSink
from activity_migrator.types import NotificationStatusRecord
from activity_migrator.utils.logging import log_with_context

NOTHING_TO_PROCESS = "No activities data to be processed."


class ChunkedMigrationRunner:
    """Move qualifying source rows into the status sink, one chunk per call."""

    name = STATUS_MIGRATION

    def __init__(
        self,
        source: RowSource,
        sink: StatusSink,
        chunk_size: int = MIGRATION_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.source = source
        self.sink = sink
        self.chunk_size = chunk_size

    def initialize(self, cursor: ProgressCursor) -> ProgressCursor:
        """Count the rows to migrate and fix the cursor's total."""
        total = self.source.count()
        log_with_context(
            logging.INFO,
            f"Found {total} activity status rows to migrate",
            migration=self.name,
            total=total,
        )
        return cursor.with_total(total)

    def run(self, cursor: ProgressCursor) -> tuple[ProgressCursor, str]:
        """
        Run one invocation of the migration.

        Storage errors propagate; the caller keeps the cursor it passed in, so
        the next call retries the same window.

        Args:
            cursor: The cursor persisted after the previous invocation

        Returns:
            The advanced cursor and a human-readable progress message
        """
        if not cursor.is_initialized:
            cursor = self.initialize(cursor)

        if not cursor.total:
            return cursor, NOTHING_TO_PROCESS

        rows = self.source.fetch(offset=cursor.current, limit=self.chunk_size)
        records = [
            NotificationStatusRecord(aid=row["aid"], uid=row["uid"], status=row["status"])
            for row in rows
        ]
        inserted = self.sink.insert(records)

        cursor = cursor.advance(self.chunk_size)
        log_with_context(
            logging.DEBUG,
            f"Copied window of {len(records)} rows ({inserted} new), "
            f"cursor at {cursor.current}/{cursor.total}",
            migration=self.name,
        )
        message = (
            f"{cursor.current} activities data has been migrated to "
            "activity_notification_status."
        )
        return cursor, message
