"""SQLAlchemy-backed collaborators for the batch migrations.

Each adapter takes an :class:`~sqlalchemy.engine.Engine` and opens a short
connection per call.  Writes run inside ``engine.begin()`` so each call is
atomic on its own; nothing spans invocations.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, TypeVar

from sqlalchemy import Select, Table, delete, func, insert, select
from sqlalchemy.engine import Engine

from activity_migrator.constants import ANONYMOUS_USER_ID
from activity_migrator.exceptions import ConfigError
from activity_migrator.services import schema
from activity_migrator.types import (
    Activity,
    NotificationStatusRecord,
    RelatedEntity,
    SourceRow,
)
from activity_migrator.utils.logging import log_with_context

# Upper bound on bound parameters in a single IN (...) clause
IN_CLAUSE_CHUNK = 500

T = TypeVar("T")


def _chunked(items: Sequence[T], size: int = IN_CLAUSE_CHUNK) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class SqlRowSource:
    """Recipient rows joined with their activity status, recipient 0 excluded."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _query(self) -> Select:
        aur = schema.recipient_user.alias("aur")
        asv = schema.status_field.alias("asv")
        return (
            select(
                aur.c.field_activity_recipient_user_target_id.label("uid"),
                aur.c.entity_id.label("aid"),
                asv.c.field_activity_status_value.label("status"),
            )
            .select_from(aur.join(asv, aur.c.entity_id == asv.c.entity_id))
            .where(aur.c.field_activity_recipient_user_target_id != ANONYMOUS_USER_ID)
        )

    def count(self) -> int:
        query = select(func.count()).select_from(self._query().subquery())
        with self.engine.connect() as conn:
            return int(conn.execute(query).scalar_one())

    def fetch(self, offset: int, limit: int) -> list[SourceRow]:
        query = self._query()
        # Stable ordering keeps OFFSET pagination deterministic between calls
        query = query.order_by(query.selected_columns.aid, query.selected_columns.uid)
        query = query.offset(offset).limit(limit)
        with self.engine.connect() as conn:
            return [
                SourceRow(uid=row.uid, aid=row.aid, status=row.status)
                for row in conn.execute(query)
            ]


class SqlStatusSink:
    """The ``activity_notification_status`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.table = schema.notification_status

    def insert(self, rows: Iterable[NotificationStatusRecord]) -> int:
        """Insert rows whose ``(aid, uid)`` pair is not present yet."""
        pending: dict[tuple[int, int], dict[str, Any]] = {}
        for row in rows:
            pending.setdefault(
                (row["aid"], row["uid"]),
                {"aid": row["aid"], "uid": row["uid"], "status": row["status"]},
            )
        if not pending:
            return 0

        aids = sorted({aid for aid, _ in pending})
        with self.engine.begin() as conn:
            for chunk in _chunked(aids):
                existing = conn.execute(
                    select(self.table.c.aid, self.table.c.uid).where(
                        self.table.c.aid.in_(chunk)
                    )
                )
                for row in existing:
                    pending.pop((row.aid, row.uid), None)

            if pending:
                conn.execute(insert(self.table), list(pending.values()))

        log_with_context(
            logging.DEBUG, f"Inserted {len(pending)} notification status rows"
        )
        return len(pending)

    def delete_by_ids(self, activity_ids: Iterable[int]) -> int:
        ids = sorted(set(activity_ids))
        deleted = 0
        with self.engine.begin() as conn:
            for chunk in _chunked(ids):
                result = conn.execute(
                    delete(self.table).where(self.table.c.aid.in_(chunk))
                )
                deleted += result.rowcount or 0
        return deleted

    def activity_ids(self) -> list[int]:
        query = select(self.table.c.aid).distinct().order_by(self.table.c.aid)
        with self.engine.connect() as conn:
            return [int(aid) for aid in conn.execute(query).scalars()]


class SqlActivityStore:
    """Load and delete activity entities.

    Acts as both the EntityResolver and the EntityStore.  ``related_tables``
    maps a related-entity target type (``node``, ``post``, ...) to the table
    holding that content; an activity whose target row is missing has no
    related entity.
    """

    def __init__(self, engine: Engine, related_tables: Mapping[str, Table]) -> None:
        self.engine = engine
        self.related_tables = dict(related_tables)

    def load(self, activity_id: int) -> Activity | None:
        field = schema.related_entity_field
        with self.engine.connect() as conn:
            found = conn.execute(
                select(schema.activity.c.id).where(schema.activity.c.id == activity_id)
            ).first()
            if found is None:
                return None

            reference = conn.execute(
                select(
                    field.c.field_activity_entity_target_type,
                    field.c.field_activity_entity_target_id,
                )
                .where(field.c.entity_id == activity_id)
                .order_by(field.c.delta)
            ).first()
            if reference is None:
                return Activity(id=activity_id)

            target_type, target_id = reference
            table = self.related_tables.get(target_type)
            if table is None:
                raise ConfigError(
                    f"No related_entity_tables entry for target type '{target_type}' "
                    f"(activity {activity_id})"
                )
            id_column = list(table.primary_key.columns)[0]
            exists = conn.execute(
                select(id_column).where(id_column == target_id)
            ).first()

        if exists is None:
            return Activity(id=activity_id)
        return Activity(
            id=activity_id,
            related_entity=RelatedEntity(target_type=target_type, target_id=target_id),
        )

    def delete(self, activities: Mapping[int, Activity]) -> None:
        """Delete activities together with their field rows."""
        ids = sorted(activities)
        if not ids:
            return
        with self.engine.begin() as conn:
            for chunk in _chunked(ids):
                for table in schema.ACTIVITY_FIELD_TABLES:
                    conn.execute(delete(table).where(table.c.entity_id.in_(chunk)))
                conn.execute(
                    delete(schema.activity).where(schema.activity.c.id.in_(chunk))
                )
        log_with_context(logging.DEBUG, f"Deleted {len(ids)} activity entities")
