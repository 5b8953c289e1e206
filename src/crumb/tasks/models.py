"""
Task data models.

This module defines the flat Task record persisted by the store, the
aggregate ChildStats, ULID generation for task ids and title validation.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Optional
import re
import secrets
import sqlite3
import time

from crumb.core.exceptions import TitleValidationError
from crumb.tasks.constants import (
    TaskStatus,
    MAX_TASK_TITLE_LENGTH,
    FIRST_POSITION,
    ULID_ALPHABET,
    ULID_LENGTH,
    ULID_RANDOM_BITS,
    ULID_PATTERN,
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ID Generation
# =============================================================================

def _encode_crockford(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        chars.append(ULID_ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


class _MonotonicULID:
    """
    ULID factory that stays sortable within a single millisecond.

    When two ids are requested in the same millisecond the random part
    of the second is the first's plus one, so generation order and
    lexical order agree.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._last_ms = -1
        self._last_random = 0

    def new(self) -> str:
        with self._lock:
            ts_ms = int(time.time() * 1000)
            if ts_ms <= self._last_ms:
                ts_ms = self._last_ms
                self._last_random = (self._last_random + 1) % (1 << ULID_RANDOM_BITS)
            else:
                self._last_random = secrets.randbits(ULID_RANDOM_BITS)
            self._last_ms = ts_ms
            return _encode_crockford((ts_ms << ULID_RANDOM_BITS) | self._last_random, ULID_LENGTH)


_ulid_factory = _MonotonicULID()


def generate_task_id() -> str:
    """Generate a unique, lexically sortable task ID."""
    return _ulid_factory.new()


def validate_task_id(task_id: str) -> bool:
    """Validate a task ID format."""
    return bool(re.match(ULID_PATTERN, task_id))


def normalize_title(title: Optional[str]) -> str:
    """
    Strip a title and reject it if nothing is left.

    Raises:
        TitleValidationError: If the title is empty, whitespace or too long
    """
    cleaned = (title or "").strip()
    if not cleaned:
        raise TitleValidationError("Task title must not be empty")
    if len(cleaned) > MAX_TASK_TITLE_LENGTH:
        raise TitleValidationError(
            f"Task title exceeds {MAX_TASK_TITLE_LENGTH} characters",
            details={"length": len(cleaned)},
        )
    return cleaned


# =============================================================================
# Records
# =============================================================================

@dataclass(frozen=True)
class ChildStats:
    """Counts for the direct children of one task."""

    total: int = 0
    done: int = 0

    @property
    def all_done(self) -> bool:
        """True when there is at least one child and every child is done."""
        return self.total > 0 and self.done == self.total


@dataclass
class Task:
    """
    A node in the task tree, stored flat.

    The hierarchy is expressed only through ``parent_id``; sibling order
    through ``position``. Tree structure is rebuilt on every read by the
    tree builder.
    """

    title: str
    id: str = field(default_factory=generate_task_id)
    status: TaskStatus = TaskStatus.TODO
    parent_id: Optional[str] = None
    position: int = FIRST_POSITION
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = TaskStatus(self.status)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def copy(self, **changes: Any) -> "Task":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert task to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "parent_id": self.parent_id,
            "position": self.position,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create task from dictionary."""
        return cls(
            id=data["id"],
            title=data["title"],
            status=TaskStatus(data.get("status", TaskStatus.TODO.value)),
            parent_id=data.get("parent_id"),
            position=int(data.get("position", FIRST_POSITION)),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Task":
        """Convert database row to Task object."""
        return cls(
            id=row["id"],
            title=row["title"],
            status=TaskStatus(row["status"]),
            parent_id=row["parent_id"],
            position=row["position"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )


def _parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return utc_now()
