"""Progress cursor shared by the batch migrations.

A ProgressCursor is an immutable value describing how far a migration run has
got.  Each invocation of a migration receives the cursor persisted after the
previous invocation and returns a new one; the caller decides when and where
to persist it.  ``fraction_done`` is the only signal a scheduler needs: it
keeps calling until the fraction reaches 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from activity_migrator.exceptions import InvalidCursorError


class CursorState(str, Enum):
    """Lifecycle of a migration run."""

    UNINITIALIZED = "uninitialized"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass(frozen=True)
class ProgressCursor:
    """Serializable progress of one migration run.

    ``total`` is None until the migration has computed its workload on the
    first invocation, and fixed afterwards.  ``extra`` carries
    migration-specific state such as a frozen id list.
    """

    total: int | None = None
    current: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.current < 0:
            raise InvalidCursorError(
                f"current must be non-negative, got {self.current}"
            )
        if self.total is None:
            if self.current:
                raise InvalidCursorError(
                    "current must be 0 while the cursor is uninitialized"
                )
            return
        if self.total < 0:
            raise InvalidCursorError(f"total must be non-negative, got {self.total}")
        if self.current > self.total:
            raise InvalidCursorError(
                f"current ({self.current}) cannot exceed total ({self.total})"
            )

    @property
    def is_initialized(self) -> bool:
        return self.total is not None

    @property
    def fraction_done(self) -> float:
        """Return completion in ``[0, 1]``; an empty workload counts as done."""
        if self.total is None:
            return 0.0
        if self.total == 0:
            return 1.0
        return self.current / self.total

    @property
    def state(self) -> CursorState:
        if self.total is None:
            return CursorState.UNINITIALIZED
        if self.fraction_done >= 1:
            return CursorState.FINISHED
        return CursorState.IN_PROGRESS

    @property
    def is_finished(self) -> bool:
        return self.state is CursorState.FINISHED

    @property
    def remaining(self) -> int:
        if self.total is None:
            return 0
        return self.total - self.current

    def with_total(self, total: int, **extra: Any) -> ProgressCursor:
        """Initialize the cursor with its workload size.

        Args:
            total: Number of units the run will process.
            **extra: Migration-specific state stored alongside the counters.

        Returns:
            A new cursor positioned at 0.

        Raises:
            InvalidCursorError: If the cursor was already initialized.
        """
        if self.total is not None:
            raise InvalidCursorError(
                f"total is already fixed at {self.total}, cannot reset to {total}"
            )
        return ProgressCursor(total=total, current=0, extra={**self.extra, **extra})

    def advance(self, count: int) -> ProgressCursor:
        """Return a cursor moved forward by ``count``, clamped to ``total``."""
        if self.total is None:
            raise InvalidCursorError("Cannot advance an uninitialized cursor")
        if count < 0:
            raise InvalidCursorError(f"Cannot move a cursor backwards ({count})")
        return replace(self, current=self.current + min(count, self.remaining))

    def advance_to(self, position: int) -> ProgressCursor:
        """Return a cursor positioned at ``position`` (never moves backwards)."""
        return self.advance(position - self.current)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "current": self.current, "extra": dict(self.extra)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ProgressCursor:
        """Rebuild a cursor from :meth:`to_dict` output."""
        if not data:
            return cls()
        try:
            total = data.get("total")
            return cls(
                total=int(total) if total is not None else None,
                current=int(data.get("current", 0)),
                extra=dict(data.get("extra") or {}),
            )
        except (TypeError, ValueError) as e:
            raise InvalidCursorError(f"Malformed cursor data: {e}") from e
