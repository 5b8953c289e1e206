"""
Batch operation models.

A closed set of operation variants, tagged by ``op``. Field aliases
match the instruction format (``taskId``, ``parentId``, ``newParentId``)
while Python code uses snake_case names; both are accepted on input.
"""

from typing import Annotated, Any, Literal, Mapping, Optional, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from crumb.core.exceptions import OperationParseError


class _Operation(BaseModel):
    """Common model configuration for operations."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with instruction-format field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AddOperation(_Operation):
    """Create a task, optionally naming it with a temporary id."""

    op: Literal["add"] = "add"
    temp_id: Optional[str] = Field(None, alias="id", description="Temporary id for later references")
    title: str = Field(..., description="Title of the new task")
    parent_id: Optional[str] = Field(None, alias="parentId", description="Parent id, real or temporary")


class DeleteOperation(_Operation):
    """Delete a task and its subtree."""

    op: Literal["delete"] = "delete"
    task_id: str = Field(..., alias="taskId")


class MoveOperation(_Operation):
    """Reparent a task; None moves it to the root group."""

    op: Literal["move"] = "move"
    task_id: str = Field(..., alias="taskId")
    new_parent_id: Optional[str] = Field(None, alias="newParentId")


class UpdateOperation(_Operation):
    """Rename a task."""

    op: Literal["update"] = "update"
    task_id: str = Field(..., alias="taskId")
    title: str = Field(..., description="New title")


class DoneOperation(_Operation):
    """Complete a task, with upward propagation."""

    op: Literal["done"] = "done"
    task_id: str = Field(..., alias="taskId")


TaskOperation = Annotated[
    Union[AddOperation, DeleteOperation, MoveOperation, UpdateOperation, DoneOperation],
    Field(discriminator="op"),
]

_OPERATION_ADAPTER: TypeAdapter[TaskOperation] = TypeAdapter(TaskOperation)


def parse_operation(raw: Any) -> TaskOperation:
    """Validate a single raw operation mapping."""
    return _OPERATION_ADAPTER.validate_python(raw)


def parse_operations(raw: Any) -> list[TaskOperation]:
    """
    Validate an untrusted list of operation mappings.

    Raises:
        OperationParseError: If ``raw`` is not a list or an item does not
            match any operation variant
    """
    if not isinstance(raw, list):
        raise OperationParseError(
            "Operations must be a list",
            details={"type": type(raw).__name__},
        )

    operations: list[TaskOperation] = []
    for index, item in enumerate(raw):
        try:
            operations.append(parse_operation(item))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise OperationParseError(
                f"Invalid operation at index {index}: {first.get('msg', 'invalid')}",
                index=index,
                details={"field": location} if location else None,
            ) from e
    return operations


def describe_operation(
    operation: TaskOperation,
    names: Mapping[str, str],
    added_names: Optional[Mapping[str, str]] = None,
) -> str:
    """
    One-line human description of an operation, for previews.

    Args:
        operation: Operation to describe
        names: Existing task id -> title
        added_names: Temporary id -> title of tasks added earlier in the batch
    """
    added_names = added_names or {}

    def name(task_id: str) -> str:
        return names.get(task_id) or added_names.get(task_id) or task_id[:8]

    if isinstance(operation, AddOperation):
        parent = f' (under "{name(operation.parent_id)}")' if operation.parent_id else ""
        return f'+ add "{operation.title}"{parent}'
    if isinstance(operation, DeleteOperation):
        return f'- delete "{name(operation.task_id)}"'
    if isinstance(operation, MoveOperation):
        target = f'under "{name(operation.new_parent_id)}"' if operation.new_parent_id else "to root"
        return f'~ move "{name(operation.task_id)}" {target}'
    if isinstance(operation, UpdateOperation):
        return f'~ rename "{name(operation.task_id)}" to "{operation.title}"'
    if isinstance(operation, DoneOperation):
        return f'✓ complete "{name(operation.task_id)}"'
    assert_never(operation)


def describe_operations(
    operations: list[TaskOperation],
    names: Mapping[str, str],
) -> list[str]:
    """Describe a batch, resolving temporary ids to titles added earlier."""
    added: dict[str, str] = {}
    lines: list[str] = []
    for operation in operations:
        lines.append(describe_operation(operation, names, added))
        if isinstance(operation, AddOperation) and operation.temp_id:
            added[operation.temp_id] = operation.title
    return lines
