"""Resolve CLI task references against the current listing."""

from crumb.core.exceptions import TaskReferenceError
from crumb.tasks.models import Task
from crumb.tasks.tree import FlatTask


def resolve_task(reference: str, rows: list[FlatTask]) -> Task:
    """
    Map a reference to a task.

    A reference is either a 1-based row number from ``crumb list`` or a
    case-insensitive prefix of a task id that matches exactly one task.

    Raises:
        TaskReferenceError: If nothing or more than one task matches
    """
    reference = reference.strip()
    if not reference:
        raise TaskReferenceError("Empty task reference", reference=reference)

    if reference.isdigit():
        number = int(reference)
        if not rows:
            raise TaskReferenceError("There are no tasks", reference=reference)
        if number < 1 or number > len(rows):
            raise TaskReferenceError(
                f"Number {number} is out of range (1-{len(rows)})",
                reference=reference,
            )
        return rows[number - 1].task

    prefix = reference.upper()
    matches = [row.task for row in rows if row.task.id.upper().startswith(prefix)]
    if not matches:
        raise TaskReferenceError(
            f'"{reference}" is neither a task number nor a known id prefix',
            reference=reference,
        )
    if len(matches) > 1:
        raise TaskReferenceError(
            f'Id prefix "{reference}" matches {len(matches)} tasks',
            reference=reference,
        )
    return matches[0]
