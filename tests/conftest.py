"""Shared test fixtures for the activity_migrator test suite."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from sqlalchemy import create_engine, insert

from activity_migrator.services import schema
from activity_migrator.utils.logging import LOGGER_NAME
from tests.fakes import (
    InMemoryEntityStore,
    InMemoryRowSource,
    InMemoryStatusSink,
)

NODE_TABLE = schema.related_entity_table("node", "nid")


@pytest.fixture(autouse=True)
def _reset_migrator_logger():
    """Drop handlers the CLI attaches so they never outlive the test's streams."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture()
def engine(tmp_path):
    """A file-backed SQLite database with the CMS tables created."""
    db = create_engine(f"sqlite:///{tmp_path / 'cms.sqlite'}")
    schema.metadata.create_all(db)
    yield db
    db.dispose()


@pytest.fixture()
def related_tables():
    return {"node": NODE_TABLE}


def _seed_field_rows(engine, rows: list[tuple[int, int, Any]]) -> None:
    """Insert ``(aid, uid, status)`` triples into the wide field tables.

    Each activity gets one status row and one recipient row per uid, in the
    shape the CMS stores them.
    """
    recipients: list[dict[str, Any]] = []
    statuses: dict[int, dict[str, Any]] = {}
    deltas: dict[int, int] = {}
    for aid, uid, status in rows:
        delta = deltas.get(aid, 0)
        deltas[aid] = delta + 1
        recipients.append(
            {
                "entity_id": aid,
                "delta": delta,
                "field_activity_recipient_user_target_id": uid,
            }
        )
        statuses.setdefault(
            aid, {"entity_id": aid, "delta": 0, "field_activity_status_value": status}
        )
    with engine.begin() as conn:
        if recipients:
            conn.execute(insert(schema.recipient_user), recipients)
            conn.execute(insert(schema.status_field), list(statuses.values()))


def _seed_activity(
    engine, activity_id: int, node_id: int | None = None, node_exists: bool = True
) -> None:
    """Create an activity, optionally pointing at a node."""
    with engine.begin() as conn:
        conn.execute(insert(schema.activity), [{"id": activity_id, "created": 0}])
        if node_id is None:
            return
        conn.execute(
            insert(schema.related_entity_field),
            [
                {
                    "entity_id": activity_id,
                    "delta": 0,
                    "field_activity_entity_target_type": "node",
                    "field_activity_entity_target_id": node_id,
                }
            ],
        )
        if node_exists:
            conn.execute(insert(NODE_TABLE).prefix_with("OR IGNORE"), [{"nid": node_id}])


@pytest.fixture()
def row_source():
    return InMemoryRowSource()


@pytest.fixture()
def status_sink():
    return InMemoryStatusSink()


@pytest.fixture()
def entity_store():
    return InMemoryEntityStore()


@pytest.fixture()
def seed_rows(engine):
    """Factory fixture: ``seed_rows([(aid, uid, status), ...])``."""
    return lambda rows: _seed_field_rows(engine, rows)


@pytest.fixture()
def seed_activity(engine):
    """Factory fixture: ``seed_activity(aid, node_id=None, node_exists=True)``."""

    def _seed(activity_id: int, node_id: int | None = None, node_exists: bool = True):
        _seed_activity(engine, activity_id, node_id=node_id, node_exists=node_exists)

    return _seed
