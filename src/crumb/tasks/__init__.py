"""
Crumb Task Core.

Hierarchical, ordered task storage with atomic multi-step mutation,
upward completion propagation and multi-level undo.

Public API:
-----------

Constants and Enums:
    TaskStatus - todo / done
    ReorderDirection - up / down

Models:
    Task - Flat task record
    ChildStats - Done/total counts of direct children

Storage:
    TaskStore - SQLite persistence with nested transactions

Tree:
    build_forest - Build the hierarchy from flat records
    TaskForest - Arena of nodes with root order
    TaskNode - Task plus child ids
    FlatTask - One visible, depth-annotated row

Mutation:
    TaskEngine - create, rename, complete, delete, move, reorder, indent, ...

Undo:
    UndoManager - Bounded snapshot stack

Batch:
    TaskOperation - Tagged union of AddOperation, DeleteOperation,
        MoveOperation, UpdateOperation, DoneOperation
    parse_operations - Validate raw operation dicts
    BatchApplier - All-or-nothing batch application
    BatchResult - Result with temporary-id mapping

Utilities:
    generate_task_id - Generate a ULID task id
    validate_task_id - Validate task id format
    normalize_title - Strip and validate a title

Example Usage:
--------------
    store = TaskStore(Path("~/.crumb/crumb.db").expanduser())
    engine = TaskEngine(store)
    undo = UndoManager(store)

    release = engine.create("Ship release")
    tests = engine.create("Write tests", parent_id=release.id)

    undo.snapshot()
    engine.complete(tests.id)   # release is auto-completed
    undo.undo()                 # both back to todo

    forest = build_forest(store.list_all())
    for row in forest.flatten():
        print("  " * row.depth + row.task.title)
"""

from crumb.tasks.constants import (
    TaskStatus,
    ReorderDirection,
    MAX_TASK_TITLE_LENGTH,
    STATUS_ICONS,
)
from crumb.tasks.models import (
    Task,
    ChildStats,
    generate_task_id,
    validate_task_id,
    normalize_title,
)
from crumb.tasks.store import TaskStore
from crumb.tasks.tree import (
    TaskForest,
    TaskNode,
    FlatTask,
    build_forest,
)
from crumb.tasks.engine import TaskEngine
from crumb.tasks.undo import UndoManager
from crumb.tasks.operations import (
    TaskOperation,
    AddOperation,
    DeleteOperation,
    MoveOperation,
    UpdateOperation,
    DoneOperation,
    parse_operation,
    parse_operations,
    describe_operation,
    describe_operations,
)
from crumb.tasks.batch import BatchApplier, BatchResult


__all__ = [
    # Constants
    "TaskStatus",
    "ReorderDirection",
    "MAX_TASK_TITLE_LENGTH",
    "STATUS_ICONS",
    # Models
    "Task",
    "ChildStats",
    "generate_task_id",
    "validate_task_id",
    "normalize_title",
    # Storage
    "TaskStore",
    # Tree
    "TaskForest",
    "TaskNode",
    "FlatTask",
    "build_forest",
    # Mutation
    "TaskEngine",
    # Undo
    "UndoManager",
    # Batch
    "TaskOperation",
    "AddOperation",
    "DeleteOperation",
    "MoveOperation",
    "UpdateOperation",
    "DoneOperation",
    "parse_operation",
    "parse_operations",
    "describe_operation",
    "describe_operations",
    "BatchApplier",
    "BatchResult",
]
