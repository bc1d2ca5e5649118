"""
Orphaned notification sweep.

Walks every activity id present in the notification status table and removes
the ones whose activity is gone, or whose activity no longer points at any
content.  The id list is read once, on the first invocation, and stored in
the cursor; later invocations walk successive windows of that frozen list.
"""

from __future__ import annotations

import logging

from activity_migrator.constants import (
    DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE,
    ORPHAN_SWEEP,
)
from activity_migrator.core.cursor import ProgressCursor
from activity_migrator.services.interfaces import (
    EntityResolver,
    EntityStore,
    ProgressReporter,
    StatusSink,
)
from activity_migrator.types import Activity
from activity_migrator.utils.logging import log_with_context

ACTIVITY_IDS_KEY = "activity_ids"
BATCH_SIZE_KEY = "batch_size"


class OrphanSweeper:
    """Delete status rows and activities that lost their related content."""

    name = ORPHAN_SWEEP

    def __init__(
        self,
        status_sink: StatusSink,
        resolver: EntityResolver,
        entity_store: EntityStore,
        batch_size: int = DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE,
        reporter: ProgressReporter | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.status_sink = status_sink
        self.resolver = resolver
        self.entity_store = entity_store
        self.batch_size = batch_size
        self.reporter = reporter

    def initialize(self, cursor: ProgressCursor) -> ProgressCursor:
        """Freeze the candidate id list and batch size into the cursor."""
        activity_ids = [int(aid) for aid in self.status_sink.activity_ids()]
        log_with_context(
            logging.INFO,
            f"Found {len(activity_ids)} activities with notification status to check",
            migration=self.name,
            total=len(activity_ids),
        )
        if not activity_ids:
            return cursor.with_total(0)
        return cursor.with_total(
            len(activity_ids),
            **{ACTIVITY_IDS_KEY: activity_ids, BATCH_SIZE_KEY: self.batch_size},
        )

    def classify(
        self, activity_ids: list[int]
    ) -> tuple[list[int], dict[int, Activity]]:
        """
        Split a window of ids into status rows to delete and activities to delete.

        Args:
            activity_ids: The ids of the current window

        Returns:
            Ids to remove from the status table, and the activities (keyed by
            id) to remove from the entity store
        """
        ids_for_delete: list[int] = []
        activities_for_delete: dict[int, Activity] = {}

        for activity_id in activity_ids:
            activity = self.resolver.load(activity_id)
            if not isinstance(activity, Activity):
                ids_for_delete.append(activity_id)
            elif activity.get_related_entity() is None:
                ids_for_delete.append(activity_id)
                activities_for_delete[activity_id] = activity

        return ids_for_delete, activities_for_delete

    def run(self, cursor: ProgressCursor) -> tuple[ProgressCursor, str | None]:
        """
        Run one invocation of the sweep.

        Args:
            cursor: The cursor persisted after the previous invocation

        Returns:
            The advanced cursor and None; the progress line goes to the
            injected reporter only
        """
        if not cursor.is_initialized:
            cursor = self.initialize(cursor)

        if not cursor.total:
            return cursor, None

        activity_ids = cursor.extra[ACTIVITY_IDS_KEY]
        batch_size = cursor.extra.get(BATCH_SIZE_KEY, self.batch_size)
        range_end = min(cursor.current + batch_size, cursor.total)

        ids_for_delete, activities_for_delete = self.classify(
            activity_ids[cursor.current : range_end]
        )

        if ids_for_delete:
            self.status_sink.delete_by_ids(ids_for_delete)
        if activities_for_delete:
            self.entity_store.delete(activities_for_delete)

        log_with_context(
            logging.DEBUG,
            f"Removed notification status for {len(ids_for_delete)} activities, "
            f"deleted {len(activities_for_delete)} activities without related entity",
            migration=self.name,
            status_deleted=len(ids_for_delete),
            activities_deleted=len(activities_for_delete),
        )

        cursor = cursor.advance_to(range_end)
        if self.reporter is not None:
            self.reporter(
                f"Progress: {round(cursor.fraction_done * 100)}% "
                f"({cursor.current} of {cursor.total} activities processed)"
            )
        return cursor, None
