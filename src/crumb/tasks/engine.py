"""
Task mutation engine.

Atomic primitives over the task store: create, rename, status changes
with upward auto-completion, cascading delete, move, sibling reorder,
indent/outdent and clear. Every primitive that writes more than one row
runs inside a single store transaction.

Boundary semantics:
- Missing ids are a recoverable no-op: the method returns False.
- Structural no-ops (first sibling cannot indent, root cannot outdent,
  first/last cannot move further) also return False.
- Moving a task under itself or one of its descendants raises
  InvalidStructureError.
- Empty titles raise TitleValidationError before the store is touched.

The engine knows nothing about undo; callers snapshot first.
"""

import logging
from typing import Optional

from crumb.core.exceptions import InvalidStructureError, TaskNotFoundError
from crumb.tasks.constants import ReorderDirection, TaskStatus
from crumb.tasks.models import Task, normalize_title, utc_now
from crumb.tasks.store import TaskStore


logger = logging.getLogger(__name__)


class TaskEngine:
    """Mutation operations on the task tree."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    @property
    def store(self) -> TaskStore:
        return self._store

    # -------------------------------------------------------------------------
    # Create / Rename
    # -------------------------------------------------------------------------

    def create(self, title: str, parent_id: Optional[str] = None) -> Task:
        """
        Create a task at the end of its sibling group.

        Args:
            title: Display text, stripped
            parent_id: Parent task id, None for a root task

        Returns:
            The stored task

        Raises:
            TitleValidationError: If the title is blank
            TaskNotFoundError: If ``parent_id`` names a missing task
        """
        clean_title = normalize_title(title)

        def body() -> Task:
            if parent_id is not None and not self._store.exists(parent_id):
                raise TaskNotFoundError("Parent task not found", task_id=parent_id)
            now = utc_now()
            task = Task(
                title=clean_title,
                parent_id=parent_id,
                position=self._store.next_position(parent_id),
                created_at=now,
                updated_at=now,
            )
            self._store.insert(task)
            return task

        task = self._store.run_atomic(body, "create")
        logger.debug(f"Created task {task.id} under {parent_id or 'root'} at {task.position}")
        return task

    def rename(self, task_id: str, title: str) -> bool:
        """
        Change a task's title.

        Returns:
            True if renamed, False if the task does not exist
        """
        clean_title = normalize_title(title)
        renamed = self._store.update_fields(task_id, title=clean_title)
        if not renamed:
            logger.debug(f"Rename skipped, task {task_id} not found")
        return renamed

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def set_status(self, task_id: str, status: TaskStatus) -> bool:
        """Set status directly, without propagation."""
        return self._store.update_fields(task_id, status=TaskStatus(status))

    def reopen(self, task_id: str) -> bool:
        """Mark a task as not done."""
        return self.set_status(task_id, TaskStatus.TODO)

    def complete(self, task_id: str) -> bool:
        """
        Mark a task done and auto-complete its ancestors.

        Walks upward from the task's parent. Each ancestor whose direct
        children are now all done is marked done too; the walk stops at
        the first ancestor with an unfinished child, or at the root.

        Returns:
            True if the task existed
        """

        def body() -> bool:
            if not self._store.update_fields(task_id, status=TaskStatus.DONE):
                return False
            completed = self._propagate_completion(task_id)
            if completed:
                logger.debug(f"Completing {task_id} auto-completed {completed}")
            return True

        return self._store.run_atomic(body, "complete")

    def toggle(self, task_id: str) -> bool:
        """Reopen a done task, otherwise complete it (with propagation)."""
        task = self._store.get(task_id)
        if task is None:
            return False
        if task.status.toggled() == TaskStatus.TODO:
            return self.reopen(task_id)
        return self.complete(task_id)

    def _propagate_completion(self, task_id: str) -> list[str]:
        completed: list[str] = []
        visited = {task_id}
        parent_id = self._store.parent_of(task_id)

        while parent_id is not None and parent_id not in visited:
            visited.add(parent_id)
            if not self._store.child_stats(parent_id).all_done:
                break
            self._store.update_fields(parent_id, status=TaskStatus.DONE)
            completed.append(parent_id)
            parent_id = self._store.parent_of(parent_id)

        return completed

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete(self, task_id: str) -> bool:
        """
        Delete a task and all of its descendants.

        No completion propagation runs afterwards: a parent whose
        remaining children are all done stays as it is.
        """
        deleted = self._store.delete(task_id)
        if deleted:
            logger.debug(f"Deleted task {task_id} and its subtree")
        return deleted

    def clear_all(self) -> int:
        """Delete every task. Returns how many were removed."""
        count = self._store.delete_all()
        logger.debug(f"Cleared {count} tasks")
        return count

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def is_descendant(self, candidate_id: str, ancestor_id: str) -> bool:
        """True if ``candidate_id`` sits somewhere below ``ancestor_id``."""
        visited: set[str] = set()
        current = self._store.parent_of(candidate_id)
        while current is not None and current not in visited:
            if current == ancestor_id:
                return True
            visited.add(current)
            current = self._store.parent_of(current)
        return False

    def move(self, task_id: str, new_parent_id: Optional[str]) -> bool:
        """
        Reparent a task, appending it to the end of the new sibling group.

        Returns:
            True if moved, False if the task does not exist

        Raises:
            TaskNotFoundError: If the new parent does not exist
            InvalidStructureError: If the new parent is the task itself
                or one of its descendants
        """

        def body() -> bool:
            if not self._store.exists(task_id):
                return False
            if new_parent_id is not None:
                if new_parent_id == task_id:
                    raise InvalidStructureError(
                        "Cannot move a task under itself",
                        task_id=task_id,
                        target_id=new_parent_id,
                        reason="self",
                    )
                if not self._store.exists(new_parent_id):
                    raise TaskNotFoundError("Target parent not found", task_id=new_parent_id)
                if self.is_descendant(new_parent_id, task_id):
                    raise InvalidStructureError(
                        "Cannot move a task under its own descendant",
                        task_id=task_id,
                        target_id=new_parent_id,
                        reason="descendant",
                    )
            return self._store.update_fields(
                task_id,
                parent_id=new_parent_id,
                position=self._store.next_position(new_parent_id),
            )

        moved = self._store.run_atomic(body, "move")
        if moved:
            logger.debug(f"Moved task {task_id} under {new_parent_id or 'root'}")
        return moved

    def reorder_sibling(self, task_id: str, direction: ReorderDirection | str) -> bool:
        """
        Swap positions with the adjacent sibling in ``direction``.

        Returns:
            True if swapped; False if the task is missing or already
            first (up) / last (down)
        """
        direction = ReorderDirection(direction)

        def body() -> bool:
            task = self._store.get(task_id)
            if task is None:
                return False
            siblings = self._store.list_children(task.parent_id)
            index = next((i for i, s in enumerate(siblings) if s.id == task_id), -1)
            if index < 0:
                return False
            swap_index = index - 1 if direction == ReorderDirection.UP else index + 1
            if swap_index < 0 or swap_index >= len(siblings):
                return False

            other = siblings[swap_index]
            positions = [s.position for s in siblings]
            if len(set(positions)) < len(positions):
                # ties sort by id; make the group dense so a swap is a swap
                self._renumber(siblings)
                new_own, new_other = swap_index, index
            else:
                new_own, new_other = other.position, task.position
            self._store.update_fields(task.id, position=new_own)
            self._store.update_fields(other.id, position=new_other)
            return True

        swapped = self._store.run_atomic(body, "reorder")
        if swapped:
            logger.debug(f"Moved task {task_id} {direction.value}")
        return swapped

    def _renumber(self, siblings: list[Task]) -> None:
        for index, sibling in enumerate(siblings):
            if sibling.position != index:
                self._store.update_fields(sibling.id, position=index)

    def indent(self, task_id: str) -> bool:
        """
        Make a task the last child of its preceding sibling.

        Returns:
            False if the task is missing or first in its group
        """

        def body() -> bool:
            task = self._store.get(task_id)
            if task is None:
                return False
            siblings = self._store.list_children(task.parent_id)
            index = next((i for i, s in enumerate(siblings) if s.id == task_id), -1)
            if index <= 0:
                return False
            return self.move(task_id, siblings[index - 1].id)

        return self._store.run_atomic(body, "indent")

    def outdent(self, task_id: str) -> bool:
        """
        Move a task up to its grandparent's group (the root group when
        the parent is a root).

        Returns:
            False if the task is missing or already a root
        """

        def body() -> bool:
            task = self._store.get(task_id)
            if task is None or task.is_root:
                return False
            parent = self._store.get(task.parent_id)
            if parent is None:
                return False
            return self.move(task_id, parent.parent_id)

        return self._store.run_atomic(body, "outdent")
