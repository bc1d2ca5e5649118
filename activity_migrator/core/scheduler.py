"""
Invocation scheduler for resumable batch migrations.

The scheduler owns the cursor for the duration of a run: it loads the last
checkpoint, calls the migration once, persists the returned cursor, and calls
again until ``fraction_done`` reaches 1.  Each call is a discrete unit of
work, so the run can be stopped between any two calls and resumed later from
the checkpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tqdm import tqdm

from activity_migrator.core.checkpoint import (
    CheckpointData,
    checkpoint_lock,
    checkpoint_path,
    clear_checkpoint,
    load_checkpoint,
    new_checkpoint,
    save_checkpoint,
)
from activity_migrator.core.cursor import ProgressCursor
from activity_migrator.utils.logging import log_with_context


class BatchMigration(Protocol):
    """Anything with a name and a ``run(cursor) -> (cursor, message)`` step."""

    name: str

    def run(self, cursor: ProgressCursor) -> tuple[ProgressCursor, str | None]:
        ...


@dataclass
class RunResult:
    """Outcome of :meth:`MigrationScheduler.run`."""

    migration: str
    cursor: ProgressCursor
    invocations: int
    resumed: bool

    @property
    def finished(self) -> bool:
        return self.cursor.is_finished


class MigrationScheduler:
    """Drive migrations to completion with a checkpoint between invocations."""

    def __init__(self, checkpoint_dir: Path, show_progress: bool = False) -> None:
        self.checkpoint_dir = Path(checkpoint_dir)
        self.show_progress = show_progress

    def checkpoint_for(self, migration: str) -> Path:
        return checkpoint_path(self.checkpoint_dir, migration)

    def step(
        self, migration: BatchMigration, checkpoint: CheckpointData
    ) -> tuple[CheckpointData, str | None]:
        """Run one invocation and persist the resulting cursor.

        When the invocation raises, nothing is persisted and the previous
        checkpoint stays on disk.
        """
        cursor, message = migration.run(checkpoint.progress_cursor)
        checkpoint.cursor = cursor.to_dict()
        checkpoint.invocations += 1
        save_checkpoint(self.checkpoint_for(migration.name), checkpoint)
        return checkpoint, message

    def run(
        self, migration: BatchMigration, max_invocations: int | None = None
    ) -> RunResult:
        """
        Call ``migration`` until it reports completion.

        Args:
            migration: The migration to drive
            max_invocations: Stop after this many calls even if unfinished;
                the checkpoint is kept so a later run resumes

        Returns:
            RunResult with the final cursor
        """
        path = self.checkpoint_for(migration.name)
        with checkpoint_lock(path):
            checkpoint = load_checkpoint(path)
            resumed = checkpoint is not None
            if checkpoint is None:
                checkpoint = new_checkpoint(migration.name)
            else:
                log_with_context(
                    logging.INFO,
                    f"Resuming {migration.name} from checkpoint "
                    f"({checkpoint.progress_cursor.current}/"
                    f"{checkpoint.progress_cursor.total})",
                    migration=migration.name,
                )

            calls = 0
            with tqdm(
                desc=migration.name,
                disable=not self.show_progress,
                unit="rows",
            ) as pbar:
                while not checkpoint.progress_cursor.is_finished:
                    if max_invocations is not None and calls >= max_invocations:
                        break
                    before = checkpoint.progress_cursor
                    checkpoint, message = self.step(migration, checkpoint)
                    calls += 1

                    cursor = checkpoint.progress_cursor
                    if pbar.total != cursor.total:
                        pbar.total = cursor.total
                        pbar.n = before.current
                    pbar.update(cursor.current - before.current)
                    if message:
                        log_with_context(logging.INFO, message, migration=migration.name)

            cursor = checkpoint.progress_cursor
            if cursor.is_finished:
                log_with_context(
                    logging.INFO,
                    f"Migration {migration.name} finished after "
                    f"{checkpoint.invocations} invocations",
                    migration=migration.name,
                )
                clear_checkpoint(path)

        return RunResult(
            migration=migration.name,
            cursor=cursor,
            invocations=calls,
            resumed=resumed,
        )

    def reset(self, migration_name: str) -> None:
        """Forget a migration's progress so the next run starts over."""
        clear_checkpoint(self.checkpoint_for(migration_name))

    def status(self, migration_name: str) -> CheckpointData | None:
        return load_checkpoint(self.checkpoint_for(migration_name))
