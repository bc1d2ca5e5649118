"""Checkpoint persistence for resumable migrations."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from activity_migrator.constants import CHECKPOINT_SCHEMA_VERSION
from activity_migrator.core.cursor import ProgressCursor
from activity_migrator.exceptions import (
    CheckpointError,
    InvalidCursorError,
    MigrationLockedError,
)
from activity_migrator.utils.logging import log_with_context


@dataclass
class CheckpointData:
    """Serializable snapshot of one migration's progress."""

    migration: str
    schema_version: int = CHECKPOINT_SCHEMA_VERSION
    cursor: dict[str, Any] = field(default_factory=dict)
    invocations: int = 0
    started_at: str | None = None
    last_updated: str | None = None

    @property
    def progress_cursor(self) -> ProgressCursor:
        return ProgressCursor.from_dict(self.cursor)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def checkpoint_path(checkpoint_dir: Path, migration: str) -> Path:
    """Return the checkpoint file used for ``migration``."""
    return checkpoint_dir / f"{migration}.json"


def new_checkpoint(migration: str) -> CheckpointData:
    return CheckpointData(migration=migration, started_at=_now_iso())


def load_checkpoint(path: Path) -> CheckpointData | None:
    """Load a checkpoint from disk, returning None if absent or corrupt."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text())
        if not isinstance(raw, dict):
            log_with_context(
                logging.WARNING,
                f"Checkpoint file {path} has invalid format, ignoring",
            )
            return None
        version = raw.get("schema_version", 0)
        if version != CHECKPOINT_SCHEMA_VERSION:
            log_with_context(
                logging.WARNING,
                f"Checkpoint schema version {version} != {CHECKPOINT_SCHEMA_VERSION}, ignoring",
            )
            return None
        # Reject cursors that break their invariants up front
        cursor = ProgressCursor.from_dict(raw.get("cursor"))
        return CheckpointData(
            migration=raw.get("migration", path.stem),
            schema_version=version,
            cursor=cursor.to_dict(),
            invocations=raw.get("invocations", 0),
            started_at=raw.get("started_at"),
            last_updated=raw.get("last_updated"),
        )
    except (json.JSONDecodeError, OSError, InvalidCursorError) as e:
        log_with_context(logging.WARNING, f"Failed to read checkpoint {path}: {e}")
        return None


def save_checkpoint(path: Path, data: CheckpointData) -> None:
    """Atomically save checkpoint to disk (write .tmp + rename).

    Raises:
        CheckpointError: If the file cannot be written; the previous
            checkpoint, if any, is left untouched.
    """
    data.last_updated = _now_iso()
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(asdict(data), indent=2) + "\n")
        tmp.replace(path)
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to write checkpoint {path}: {e}")
        raise CheckpointError(f"Failed to write checkpoint {path}: {e}") from e


def clear_checkpoint(path: Path) -> None:
    """Remove the checkpoint file after a migration finished."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log_with_context(logging.WARNING, f"Failed to remove checkpoint {path}: {e}")


@contextmanager
def checkpoint_lock(path: Path) -> Iterator[Path]:
    """Hold an exclusive lock file next to the checkpoint.

    Raises:
        MigrationLockedError: If another invocation already holds the lock.
    """
    lock_path = path.with_suffix(".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as e:
        raise MigrationLockedError(
            f"Migration is already running (lock file {lock_path} exists). "
            "Remove it if no other process is running."
        ) from e
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)
