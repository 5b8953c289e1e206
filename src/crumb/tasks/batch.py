"""
Batch operation applier.

Applies an ordered list of heterogeneous operations in one transaction.
``add`` operations may carry a temporary id; later operations in the same
batch can refer to that id wherever a task id is expected, and it is
replaced by the real id assigned at creation. Ids with no mapping are
used as given.

Failure policy: all-or-nothing. Resolution and execution both happen
inside the transaction, and any step that cannot be carried out (a
missing task, a cycle, a blank title, a storage error) aborts the batch
with BatchApplyError and rolls back every earlier step. Inside a batch a
reference to a missing task is an error, not a silent no-op.

Operations are applied strictly in the given order; a child's ``add``
must come after its parent's ``add``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, assert_never

from crumb.core.exceptions import BatchApplyError, CrumbError, TaskNotFoundError
from crumb.tasks.engine import TaskEngine
from crumb.tasks.operations import (
    AddOperation,
    DeleteOperation,
    DoneOperation,
    MoveOperation,
    TaskOperation,
    UpdateOperation,
)


logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a successfully applied batch."""

    applied: int = 0
    id_map: dict[str, str] = field(default_factory=dict)
    created_ids: list[str] = field(default_factory=list)


class BatchApplier:
    """Applies operation batches through the mutation engine."""

    def __init__(self, engine: TaskEngine) -> None:
        self._engine = engine

    def apply(self, operations: Iterable[TaskOperation]) -> BatchResult:
        """
        Apply every operation or none of them.

        Args:
            operations: Parsed operations, in execution order

        Returns:
            BatchResult with the temporary-id mapping

        Raises:
            BatchApplyError: If any step fails; nothing is kept
        """
        operations = list(operations)
        result = BatchResult()

        def body() -> None:
            for index, operation in enumerate(operations):
                try:
                    self._apply_one(operation, result)
                except CrumbError as e:
                    raise BatchApplyError(
                        f"Operation {index + 1} of {len(operations)} failed: {e.message}",
                        index=index,
                        op=operation.op,
                        details=dict(e.details),
                    ) from e
                result.applied += 1

        self._engine.store.run_atomic(body, "batch")
        logger.debug(f"Applied batch of {result.applied} operations")
        return result

    def _apply_one(self, operation: TaskOperation, result: BatchResult) -> None:
        id_map = result.id_map

        def resolve(task_id: Optional[str]) -> Optional[str]:
            if not task_id:
                return None
            return id_map.get(task_id, task_id)

        def require(task_id: str, changed: bool) -> None:
            if not changed:
                raise TaskNotFoundError("Task not found", task_id=task_id)

        if isinstance(operation, AddOperation):
            task = self._engine.create(operation.title, resolve(operation.parent_id))
            if operation.temp_id:
                id_map[operation.temp_id] = task.id
            result.created_ids.append(task.id)
        elif isinstance(operation, DeleteOperation):
            task_id = resolve(operation.task_id)
            require(task_id, self._engine.delete(task_id))
        elif isinstance(operation, MoveOperation):
            task_id = resolve(operation.task_id)
            require(task_id, self._engine.move(task_id, resolve(operation.new_parent_id)))
        elif isinstance(operation, UpdateOperation):
            task_id = resolve(operation.task_id)
            require(task_id, self._engine.rename(task_id, operation.title))
        elif isinstance(operation, DoneOperation):
            task_id = resolve(operation.task_id)
            require(task_id, self._engine.complete(task_id))
        else:
            assert_never(operation)
