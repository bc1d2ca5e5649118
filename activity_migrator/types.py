"""Shared type definitions for the activity notification migrations.

Provides the row shapes flowing from the wide entity-field tables into the
junction table, and the activity entity model used by the orphan sweep.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict

# ---------------------------------------------------------------------------
# Row shapes
# ---------------------------------------------------------------------------


class SourceRow(TypedDict):
    """One (activity, recipient) pair read from the entity-field tables."""

    uid: int
    aid: int
    status: Any


class NotificationStatusRecord(TypedDict):
    """A row of the ``activity_notification_status`` junction table."""

    aid: int
    uid: int
    status: Any


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelatedEntity:
    """The content an activity points at (a post, node, comment, ...)."""

    target_type: str
    target_id: int


@dataclass(frozen=True)
class Activity:
    """An activity entity as seen by the orphan sweep."""

    id: int
    related_entity: RelatedEntity | None = None

    def get_related_entity(self) -> RelatedEntity | None:
        """Return the related entity, or None when it no longer resolves."""
        return self.related_entity
