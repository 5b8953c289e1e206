"""
Undo history for the task store.

A bounded stack of full-store snapshots. Callers take a snapshot before
any change they want to be undoable; ``undo()`` pops the latest one and
writes it back in a single transaction. There is no redo: a popped
snapshot is gone.

The stack lives only in memory and is owned by the application context.
"""

import logging
from collections import deque
from contextlib import contextmanager
from typing import Generator

from crumb.core.constants import DEFAULT_UNDO_DEPTH
from crumb.tasks.models import Task
from crumb.tasks.store import TaskStore


logger = logging.getLogger(__name__)


class UndoManager:
    """Snapshot stack with oldest-first eviction."""

    def __init__(self, store: TaskStore, max_depth: int = DEFAULT_UNDO_DEPTH) -> None:
        """
        Args:
            store: Store to snapshot and restore
            max_depth: Snapshots kept; older ones are dropped
        """
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._store = store
        self._stack: deque[tuple[Task, ...]] = deque(maxlen=max_depth)

    @property
    def max_depth(self) -> int:
        return self._stack.maxlen or 0

    def snapshot(self) -> None:
        """Capture every task record and push the copy."""
        records = tuple(self._store.list_all())
        if len(self._stack) == self._stack.maxlen:
            logger.debug("Undo history full, dropping oldest snapshot")
        self._stack.append(records)

    def undo(self) -> bool:
        """
        Restore the most recent snapshot.

        Returns:
            True if a snapshot was restored, False if there was none
        """
        if not self._stack:
            return False
        records = self._stack.pop()
        try:
            self._store.restore(records)
        except Exception:
            # restore rolled back; keep the snapshot for another attempt
            self._stack.append(records)
            raise
        logger.debug(f"Restored snapshot of {len(records)} tasks, {len(self._stack)} left")
        return True

    def can_undo(self) -> bool:
        return bool(self._stack)

    def depth(self) -> int:
        return len(self._stack)

    def clear(self) -> None:
        self._stack.clear()

    @contextmanager
    def record(self) -> Generator[None, None, None]:
        """
        Snapshot, then run the block.

        If the block raises, the snapshot is dropped again: the failed
        change was rolled back, so there is nothing to undo.
        """
        evicted = self._stack[0] if len(self._stack) == self._stack.maxlen else None
        self.snapshot()
        try:
            yield
        except BaseException:
            self._stack.pop()
            if evicted is not None:
                self._stack.appendleft(evicted)
            raise
