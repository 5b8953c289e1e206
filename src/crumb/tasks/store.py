"""
Task store for persistence.

This module provides persistence for the task tree using SQLite. The
store is the single source of truth; tree views are rebuilt from it on
every read. Every multi-row change goes through ``transaction()`` so a
failure never leaves partial writes behind.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generator, Iterable, Optional, TypeVar

from crumb.core.exceptions import StorageError
from crumb.tasks.constants import TaskStatus, TASKS_TABLE_NAME
from crumb.tasks.models import ChildStats, Task, utc_now


logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_DB: str = ":memory:"


# =============================================================================
# Database Schema
# =============================================================================

TASKS_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TASKS_TABLE_NAME} (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'todo' CHECK(status IN ('todo', 'done')),
    parent_id TEXT REFERENCES {TASKS_TABLE_NAME}(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_parent_position ON {TASKS_TABLE_NAME}(parent_id, position);
"""

INSERT_SQL = f"""
INSERT INTO {TASKS_TABLE_NAME} (
    id, title, status, parent_id, position, created_at, updated_at
) VALUES (?, ?, ?, ?, ?, ?, ?)
"""


class _Unset:
    """Marker for 'field not given' where None is a meaningful value."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


# =============================================================================
# Task Store Implementation
# =============================================================================

class TaskStore:
    """
    Persistent storage for tasks.

    Wraps a single SQLite connection. Transactions nest: the outermost
    ``transaction()`` issues BEGIN/COMMIT, inner ones use savepoints, so
    engine primitives can be composed into a larger atomic unit by the
    batch applier or the undo manager.
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Initialize task store.

        Args:
            db_path: Path of the SQLite database file, or ":memory:"
        """
        self._db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0
        self._initialized = False

    @property
    def db_path(self) -> Path | str:
        return self._db_path

    @property
    def in_transaction(self) -> bool:
        """True while inside ``transaction()``."""
        return self._depth > 0

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Initialize the task store."""
        if self._initialized:
            return

        try:
            if isinstance(self._db_path, Path):
                self._db_path.parent.mkdir(parents=True, exist_ok=True)

            # Transactions are managed explicitly, see transaction()
            self._conn = sqlite3.connect(
                str(self._db_path), check_same_thread=False, isolation_level=None
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self._db_path != MEMORY_DB:
                self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.executescript(TASKS_SCHEMA)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(
                f"Cannot open task database: {e}",
                operation="initialize",
                details={"path": str(self._db_path)},
            ) from e

        self._initialized = True
        logger.debug(f"Task store opened at {self._db_path}")

    def close(self) -> None:
        """Close the task store."""
        if self._conn:
            self._conn.close()
            self._conn = None
        self._depth = 0
        self._initialized = False

    def _ensure_initialized(self) -> sqlite3.Connection:
        """Ensure store is initialized and return the connection."""
        if not self._initialized:
            self.initialize()
        assert self._conn is not None
        return self._conn

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Generator[sqlite3.Cursor, None, None]:
        """
        Context manager for an all-or-nothing unit of work.

        Args:
            operation: Name used in error details and logs

        Raises:
            StorageError: If SQLite fails; the unit is rolled back first
        """
        conn = self._ensure_initialized()
        outermost = self._depth == 0
        savepoint = f"crumb_sp_{self._depth}"

        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN" if outermost else f"SAVEPOINT {savepoint}")
        except sqlite3.Error as e:
            cursor.close()
            raise StorageError(f"Cannot start {operation}: {e}", operation=operation) from e

        self._depth += 1
        try:
            yield cursor
            if outermost:
                cursor.execute("COMMIT")
            else:
                cursor.execute(f"RELEASE SAVEPOINT {savepoint}")
        except BaseException as exc:
            self._rollback(cursor, outermost, savepoint)
            if isinstance(exc, sqlite3.Error):
                raise StorageError(
                    f"Storage failure during {operation}: {exc}", operation=operation
                ) from exc
            raise
        finally:
            self._depth -= 1
            cursor.close()

    def _rollback(self, cursor: sqlite3.Cursor, outermost: bool, savepoint: str) -> None:
        """Undo the current unit of work."""
        try:
            if outermost:
                if self._conn is not None and self._conn.in_transaction:
                    cursor.execute("ROLLBACK")
            else:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                cursor.execute(f"RELEASE SAVEPOINT {savepoint}")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")
            raise

    def run_atomic(self, body: Callable[[], T], operation: str = "atomic") -> T:
        """Run ``body`` inside one transaction and return its result."""
        with self.transaction(operation):
            return body()

    def _query(self, sql: str, params: Iterable[Any] = (), operation: str = "query") -> list[sqlite3.Row]:
        """Run a read statement and fetch all rows."""
        conn = self._ensure_initialized()
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Storage failure during {operation}: {e}", operation=operation) from e

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    def insert(self, task: Task) -> str:
        """
        Insert a new task record.

        Args:
            task: Task to insert

        Returns:
            Task ID
        """
        with self.transaction("insert") as cursor:
            cursor.execute(INSERT_SQL, self._task_params(task))
        return task.id

    def get(self, task_id: str) -> Optional[Task]:
        """
        Get a task by ID.

        Returns:
            Task or None if not found
        """
        rows = self._query(
            f"SELECT * FROM {TASKS_TABLE_NAME} WHERE id = ?", (task_id,), "get"
        )
        return Task.from_row(rows[0]) if rows else None

    def exists(self, task_id: str) -> bool:
        """Check whether a task exists."""
        rows = self._query(
            f"SELECT 1 FROM {TASKS_TABLE_NAME} WHERE id = ?", (task_id,), "exists"
        )
        return bool(rows)

    def parent_of(self, task_id: str) -> Optional[str]:
        """Return the parent id of a task (None for roots and missing ids)."""
        rows = self._query(
            f"SELECT parent_id FROM {TASKS_TABLE_NAME} WHERE id = ?", (task_id,), "parent_of"
        )
        return rows[0]["parent_id"] if rows else None

    def update_fields(
        self,
        task_id: str,
        *,
        title: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        parent_id: Any = UNSET,
        position: Optional[int] = None,
    ) -> bool:
        """
        Update selected fields of a task and refresh ``updated_at``.

        ``parent_id`` uses a sentinel default because None means root.

        Returns:
            True if updated, False if not found
        """
        updates = ["updated_at = ?"]
        params: list[Any] = [utc_now().isoformat()]

        if title is not None:
            updates.append("title = ?")
            params.append(title)
        if status is not None:
            updates.append("status = ?")
            params.append(TaskStatus(status).value)
        if parent_id is not UNSET:
            updates.append("parent_id = ?")
            params.append(parent_id)
        if position is not None:
            updates.append("position = ?")
            params.append(position)

        params.append(task_id)

        with self.transaction("update") as cursor:
            cursor.execute(
                f"UPDATE {TASKS_TABLE_NAME} SET {', '.join(updates)} WHERE id = ?",
                params,
            )
            return cursor.rowcount > 0

    def delete(self, task_id: str) -> bool:
        """
        Delete a task; descendants go with it through ON DELETE CASCADE.

        Returns:
            True if deleted, False if not found
        """
        with self.transaction("delete") as cursor:
            cursor.execute(f"DELETE FROM {TASKS_TABLE_NAME} WHERE id = ?", (task_id,))
            return cursor.rowcount > 0

    def delete_all(self) -> int:
        """Delete every task. Returns the number of rows removed."""
        with self.transaction("delete_all") as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {TASKS_TABLE_NAME}")
            count = cursor.fetchone()[0]
            cursor.execute(f"DELETE FROM {TASKS_TABLE_NAME}")
            return count

    def restore(self, records: Iterable[Task]) -> int:
        """
        Replace the whole table with ``records`` in one transaction.

        Foreign keys are checked at commit, so records may arrive in any
        order (children before parents).

        Returns:
            Number of records written
        """
        records = list(records)
        with self.transaction("restore") as cursor:
            cursor.execute("PRAGMA defer_foreign_keys = ON")
            cursor.execute(f"DELETE FROM {TASKS_TABLE_NAME}")
            cursor.executemany(INSERT_SQL, [self._task_params(task) for task in records])
        return len(records)

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def list_all(self) -> list[Task]:
        """All tasks ordered by position, ties broken by id (creation order)."""
        rows = self._query(
            f"SELECT * FROM {TASKS_TABLE_NAME} ORDER BY position ASC, id ASC", (), "list_all"
        )
        return [Task.from_row(row) for row in rows]

    def list_children(self, parent_id: Optional[str]) -> list[Task]:
        """Direct children of ``parent_id`` (None for the root group) in order."""
        rows = self._query(
            f"""
            SELECT * FROM {TASKS_TABLE_NAME}
            WHERE parent_id IS ?
            ORDER BY position ASC, id ASC
            """,
            (parent_id,),
            "list_children",
        )
        return [Task.from_row(row) for row in rows]

    def child_stats(self, parent_id: Optional[str]) -> ChildStats:
        """Total and done counts of the direct children of ``parent_id``."""
        rows = self._query(
            f"""
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN status = 'done' THEN 1 ELSE 0 END), 0) AS done
            FROM {TASKS_TABLE_NAME}
            WHERE parent_id IS ?
            """,
            (parent_id,),
            "child_stats",
        )
        return ChildStats(total=rows[0]["total"], done=rows[0]["done"])

    def next_position(self, parent_id: Optional[str]) -> int:
        """Position that appends to the end of a sibling group."""
        rows = self._query(
            f"""
            SELECT COALESCE(MAX(position), -1) + 1 AS pos
            FROM {TASKS_TABLE_NAME}
            WHERE parent_id IS ?
            """,
            (parent_id,),
            "next_position",
        )
        return rows[0]["pos"]

    def count(self) -> int:
        """Number of stored tasks."""
        rows = self._query(f"SELECT COUNT(*) FROM {TASKS_TABLE_NAME}", (), "count")
        return rows[0][0]

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Get task store statistics."""
        rows = self._query(
            f"""
            SELECT status, COUNT(*) AS count
            FROM {TASKS_TABLE_NAME}
            GROUP BY status
            """,
            (),
            "get_stats",
        )
        by_status = {row["status"]: row["count"] for row in rows}
        roots = self._query(
            f"SELECT COUNT(*) FROM {TASKS_TABLE_NAME} WHERE parent_id IS NULL", (), "get_stats"
        )[0][0]
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "roots": roots,
        }

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    @staticmethod
    def _task_params(task: Task) -> tuple[Any, ...]:
        return (
            task.id,
            task.title,
            task.status.value,
            task.parent_id,
            task.position,
            task.created_at.isoformat(),
            task.updated_at.isoformat(),
        )
