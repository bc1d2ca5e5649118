"""Unit tests for the chunked status consolidation migration."""

from __future__ import annotations

import math
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from activity_migrator.core.cursor import ProgressCursor
from activity_migrator.core.migration_runner import (
    NOTHING_TO_PROCESS,
    ChunkedMigrationRunner,
)
from activity_migrator.services import schema
from activity_migrator.services.sql import SqlRowSource, SqlStatusSink
from tests.fakes import InMemoryRowSource, InMemoryStatusSink


def _run_to_completion(runner, cursor=None):
    cursor = cursor or ProgressCursor()
    steps = []
    while not cursor.is_finished:
        cursor, message = runner.run(cursor)
        steps.append((cursor, message))
    return cursor, steps


class TestInitialization:
    """Tests for the first invocation."""

    def test_zero_rows_finishes_without_insert(self):
        sink = MagicMock()
        runner = ChunkedMigrationRunner(InMemoryRowSource(), sink)

        cursor, message = runner.run(ProgressCursor())

        assert cursor.fraction_done == 1
        assert cursor.total == 0
        assert message == NOTHING_TO_PROCESS
        sink.insert.assert_not_called()

    def test_only_anonymous_rows_counts_as_empty(self):
        source = InMemoryRowSource([(1, 0, "0"), (2, 0, "1")])
        sink = InMemoryStatusSink()

        cursor, message = ChunkedMigrationRunner(source, sink).run(ProgressCursor())

        assert cursor.is_finished
        assert message == NOTHING_TO_PROCESS
        assert sink.rows == {}

    def test_total_counted_once(self):
        source = InMemoryRowSource([(aid, 1, "0") for aid in range(1, 8)])
        source.count = MagicMock(wraps=source.count)
        runner = ChunkedMigrationRunner(source, InMemoryStatusSink(), chunk_size=3)

        _run_to_completion(runner)

        source.count.assert_called_once()

    def test_rejects_non_positive_chunk_size(self):
        with pytest.raises(ValueError):
            ChunkedMigrationRunner(InMemoryRowSource(), InMemoryStatusSink(), 0)


class TestChunking:
    """Tests for window coverage and cursor advance."""

    @pytest.mark.parametrize("total,chunk", [(1, 5), (5, 5), (12, 5), (11, 3)])
    def test_invocation_count_is_ceil_total_over_chunk(self, total, chunk):
        source = InMemoryRowSource([(aid, 7, "0") for aid in range(1, total + 1)])
        sink = InMemoryStatusSink()
        runner = ChunkedMigrationRunner(source, sink, chunk_size=chunk)

        cursor, steps = _run_to_completion(runner)

        assert len(steps) == math.ceil(total / chunk)
        assert cursor.current == total
        assert len(sink.rows) == total

    def test_windows_are_offset_paginated(self):
        source = InMemoryRowSource([(aid, 1, "0") for aid in range(1, 13)])
        runner = ChunkedMigrationRunner(source, InMemoryStatusSink(), chunk_size=5)

        cursor, steps = _run_to_completion(runner)

        assert source.fetch_calls == [(0, 5), (5, 5), (10, 5)]
        assert [c.current for c, _ in steps] == [5, 10, 12]
        assert [c.fraction_done for c, _ in steps] == [5 / 12, 10 / 12, 1]

    def test_progress_message_reports_cumulative_count(self):
        source = InMemoryRowSource([(aid, 1, "0") for aid in range(1, 8)])
        runner = ChunkedMigrationRunner(source, InMemoryStatusSink(), chunk_size=5)

        _, steps = _run_to_completion(runner)

        assert steps[0][1].startswith("5 activities data has been migrated")
        assert steps[1][1].startswith("7 activities data has been migrated")

    def test_anonymous_recipients_never_migrated(self):
        source = InMemoryRowSource(
            [(1, 0, "0"), (1, 4, "1"), (2, 0, "0"), (2, 5, "0"), (3, 6, "1")]
        )
        sink = InMemoryStatusSink()

        _run_to_completion(ChunkedMigrationRunner(source, sink, chunk_size=2))

        assert sorted(sink.rows) == [(1, 4), (2, 5), (3, 6)]
        assert all(uid != 0 for _, uid in sink.rows)

    def test_malformed_rows_pass_through(self):
        sink = InMemoryStatusSink()
        _run_to_completion(
            ChunkedMigrationRunner(InMemoryRowSource([(1, 2, None)]), sink)
        )
        assert sink.rows[(1, 2)]["status"] is None


class TestResumability:
    """Tests for interrupted runs and retried windows."""

    def test_resume_from_persisted_cursor_matches_uninterrupted_run(self):
        rows = [(aid, uid, str(aid % 2)) for aid in range(1, 10) for uid in (1, 2)]

        straight = InMemoryStatusSink()
        _run_to_completion(
            ChunkedMigrationRunner(InMemoryRowSource(rows), straight, chunk_size=4)
        )

        resumed = InMemoryStatusSink()
        first = ChunkedMigrationRunner(InMemoryRowSource(rows), resumed, chunk_size=4)
        cursor, _ = first.run(ProgressCursor())
        cursor, _ = first.run(cursor)
        persisted = ProgressCursor.from_dict(cursor.to_dict())
        second = ChunkedMigrationRunner(InMemoryRowSource(rows), resumed, chunk_size=4)
        _run_to_completion(second, persisted)

        assert resumed.rows == straight.rows

    def test_storage_error_leaves_cursor_for_retry(self):
        source = InMemoryRowSource([(aid, 1, "0") for aid in range(1, 8)])
        sink = InMemoryStatusSink()
        runner = ChunkedMigrationRunner(source, sink, chunk_size=5)
        cursor, _ = runner.run(ProgressCursor())

        failing = MagicMock()
        failing.insert.side_effect = OperationalError("INSERT", {}, Exception("gone"))
        with pytest.raises(OperationalError):
            ChunkedMigrationRunner(source, failing, chunk_size=5).run(cursor)

        cursor, _ = runner.run(cursor)
        assert cursor.is_finished
        assert len(sink.rows) == 7

    def test_retrying_a_window_does_not_duplicate(self):
        source = InMemoryRowSource([(aid, 1, "0") for aid in range(1, 4)])
        sink = InMemoryStatusSink()
        runner = ChunkedMigrationRunner(source, sink, chunk_size=5)

        start = ProgressCursor()
        runner.run(start)
        cursor, _ = runner.run(start)

        assert cursor.is_finished
        assert len(sink.rows) == 3


class TestSqlMigration:
    """End-to-end runs against SQLite."""

    def test_copies_field_rows_into_junction_table(self, engine, seed_rows):
        seed_rows(
            [(1, 10, "0"), (1, 11, "0"), (1, 0, "0"), (2, 10, "1"), (3, 12, "0")]
        )
        runner = ChunkedMigrationRunner(
            SqlRowSource(engine), SqlStatusSink(engine), chunk_size=2
        )

        cursor, steps = _run_to_completion(runner)

        assert cursor.total == 4
        assert len(steps) == 2
        with engine.connect() as conn:
            rows = conn.execute(
                select(
                    schema.notification_status.c.aid,
                    schema.notification_status.c.uid,
                    schema.notification_status.c.status,
                ).order_by(
                    schema.notification_status.c.aid, schema.notification_status.c.uid
                )
            ).all()
        assert [tuple(r) for r in rows] == [
            (1, 10, "0"),
            (1, 11, "0"),
            (2, 10, "1"),
            (3, 12, "0"),
        ]

    def test_empty_database_finishes_immediately(self, engine):
        runner = ChunkedMigrationRunner(SqlRowSource(engine), SqlStatusSink(engine))
        cursor, message = runner.run(ProgressCursor())
        assert cursor.is_finished
        assert message == NOTHING_TO_PROCESS

    def test_rerunning_a_window_is_idempotent(self, engine, seed_rows):
        seed_rows([(1, 10, "0"), (2, 11, "1")])
        runner = ChunkedMigrationRunner(SqlRowSource(engine), SqlStatusSink(engine))

        runner.run(ProgressCursor())
        runner.run(ProgressCursor())

        assert SqlStatusSink(engine).activity_ids() == [1, 2]
        with engine.connect() as conn:
            count = len(conn.execute(select(schema.notification_status)).all())
        assert count == 2
