"""
Task tree constants and enumerations.

This module defines the status values, directions and storage names
shared by the task store, tree builder and mutation engine.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Enumerations
# =============================================================================

class TaskStatus(str, Enum):
    """Completion status of a task."""

    TODO = "todo"
    DONE = "done"

    def toggled(self) -> "TaskStatus":
        """Return the opposite status."""
        return TaskStatus.TODO if self is TaskStatus.DONE else TaskStatus.DONE


class ReorderDirection(str, Enum):
    """Direction for swapping a task with an adjacent sibling."""

    UP = "up"
    DOWN = "down"


# =============================================================================
# Task Configuration Constants
# =============================================================================

# Limits
MAX_TASK_TITLE_LENGTH: Final[int] = 500

# Positions
FIRST_POSITION: Final[int] = 0

# Database
TASKS_TABLE_NAME: Final[str] = "tasks"

# ULID
ULID_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26
ULID_RANDOM_BITS: Final[int] = 80
ULID_PATTERN: Final[str] = r"^[0-9A-HJKMNP-TV-Z]{26}$"

# Display
STATUS_ICONS: Final[dict[TaskStatus, str]] = {
    TaskStatus.TODO: "○",
    TaskStatus.DONE: "●",
}
