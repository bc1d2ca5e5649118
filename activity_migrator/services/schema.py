"""SQLAlchemy table definitions for the CMS tables the migrations touch.

Only the columns the migrations read or write are declared.  Related content
tables (nodes, posts, comments, ...) are declared on demand from
configuration with :func:`related_entity_table`.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
)

from activity_migrator.constants import (
    ACTIVITY_TABLE,
    NOTIFICATION_STATUS_TABLE,
    RECIPIENT_TABLE,
    RELATED_ENTITY_TABLE,
    STATUS_FIELD_TABLE,
)

metadata = MetaData()

activity = Table(
    ACTIVITY_TABLE,
    metadata,
    Column("id", Integer, primary_key=True),
    Column("created", Integer, nullable=True),
)

recipient_user = Table(
    RECIPIENT_TABLE,
    metadata,
    Column("entity_id", Integer, nullable=False),
    Column("delta", Integer, nullable=False, default=0),
    Column("field_activity_recipient_user_target_id", Integer, nullable=False),
    PrimaryKeyConstraint("entity_id", "delta"),
)

status_field = Table(
    STATUS_FIELD_TABLE,
    metadata,
    Column("entity_id", Integer, nullable=False),
    Column("delta", Integer, nullable=False, default=0),
    Column("field_activity_status_value", String(255), nullable=True),
    PrimaryKeyConstraint("entity_id", "delta"),
)

related_entity_field = Table(
    RELATED_ENTITY_TABLE,
    metadata,
    Column("entity_id", Integer, nullable=False),
    Column("delta", Integer, nullable=False, default=0),
    Column("field_activity_entity_target_type", String(32), nullable=False),
    Column("field_activity_entity_target_id", Integer, nullable=False),
    PrimaryKeyConstraint("entity_id", "delta"),
)

# One row per (activity, recipient); the key makes re-inserting a window a no-op.
notification_status = Table(
    NOTIFICATION_STATUS_TABLE,
    metadata,
    Column("aid", Integer, nullable=False),
    Column("uid", Integer, nullable=False),
    Column("status", String(255), nullable=True),
    PrimaryKeyConstraint("aid", "uid"),
)

# Tables holding activity fields, cleared together with the activity itself.
ACTIVITY_FIELD_TABLES = (recipient_user, status_field, related_entity_field)


def related_entity_table(
    name: str, id_column: str, target_metadata: MetaData | None = None
) -> Table:
    """Return the table storing one kind of related content.

    Args:
        name: Table name (e.g. ``node``)
        id_column: Primary key column (e.g. ``nid``)
        target_metadata: MetaData to declare the table on; defaults to the
            module-level metadata

    Returns:
        The (possibly already declared) Table
    """
    md = target_metadata if target_metadata is not None else metadata
    if name in md.tables:
        return md.tables[name]
    return Table(name, md, Column(id_column, Integer, primary_key=True))
