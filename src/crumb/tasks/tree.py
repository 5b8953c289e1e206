"""
Task tree builder.

Reconstructs the parent/child hierarchy from the flat, position-ordered
record set and produces the flattened, depth-annotated view the
frontends display.

Algorithm Complexity:
- build_forest: O(n), one pass to index nodes, one pass to link them
- flatten: O(v) where v is the number of visible nodes

Nodes live in an arena keyed by id and refer to their children by id,
so there are no parent/child object cycles.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from crumb.tasks.models import ChildStats, Task


@dataclass
class TaskNode:
    """A task plus the ids of its direct children, in sibling order."""

    task: Task
    child_ids: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def has_children(self) -> bool:
        return bool(self.child_ids)


@dataclass(frozen=True)
class FlatTask:
    """
    One visible row of the flattened tree.

    Attributes:
        task: The task record
        depth: Nesting level, 0 for roots
        is_last: Whether the task is the last one in its sibling group
        has_children: Whether the task has any children (collapsed or not)
        done_count: Direct children that are done
        total_count: Direct children in total
        ancestors_last: For each ancestor level below the root, whether
            that ancestor was last in its group (drives tree guides)
    """

    task: Task
    depth: int
    is_last: bool
    has_children: bool
    done_count: int
    total_count: int
    ancestors_last: tuple[bool, ...] = ()

    @property
    def all_children_done(self) -> bool:
        return self.has_children and self.done_count == self.total_count


@dataclass
class TaskForest:
    """Arena of task nodes with the ordered list of root ids."""

    nodes: dict[str, TaskNode] = field(default_factory=dict)
    root_ids: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.nodes

    def get(self, task_id: str) -> Optional[TaskNode]:
        return self.nodes.get(task_id)

    def roots(self) -> list[Task]:
        """Root tasks in display order."""
        return [self.nodes[task_id].task for task_id in self.root_ids]

    def children(self, task_id: Optional[str]) -> list[Task]:
        """Direct children of a task, or the roots when ``task_id`` is None."""
        if task_id is None:
            return self.roots()
        node = self.nodes.get(task_id)
        if node is None:
            return []
        return [self.nodes[child_id].task for child_id in node.child_ids]

    def child_stats(self, task_id: str) -> ChildStats:
        """Done/total counts for the direct children of ``task_id``."""
        children = self.children(task_id)
        return ChildStats(
            total=len(children),
            done=sum(1 for child in children if child.is_done),
        )

    def walk(self) -> Iterator[tuple[Task, int]]:
        """Depth-first pre-order walk yielding (task, depth)."""
        stack: list[tuple[str, int]] = [(task_id, 0) for task_id in reversed(self.root_ids)]
        while stack:
            task_id, depth = stack.pop()
            node = self.nodes[task_id]
            yield node.task, depth
            for child_id in reversed(node.child_ids):
                stack.append((child_id, depth + 1))

    def flatten(self, collapsed_ids: Iterable[str] = ()) -> list[FlatTask]:
        """
        Flatten the forest into display rows.

        A collapsed node is still listed, but its subtree is omitted.

        Args:
            collapsed_ids: Ids of nodes whose children are hidden

        Returns:
            Visible rows in display order
        """
        collapsed = set(collapsed_ids)
        rows: list[FlatTask] = []

        # (task_id, depth, is_last, ancestors_last)
        stack: list[tuple[str, int, bool, tuple[bool, ...]]] = []
        self._push_group(stack, self.root_ids, 0, ())

        while stack:
            task_id, depth, is_last, ancestors_last = stack.pop()
            node = self.nodes[task_id]
            stats = self.child_stats(task_id)
            rows.append(
                FlatTask(
                    task=node.task,
                    depth=depth,
                    is_last=is_last,
                    has_children=node.has_children,
                    done_count=stats.done,
                    total_count=stats.total,
                    ancestors_last=ancestors_last,
                )
            )
            if node.has_children and task_id not in collapsed:
                child_ancestors = ancestors_last + (is_last,) if depth > 0 else ()
                self._push_group(stack, node.child_ids, depth + 1, child_ancestors)

        return rows

    def numbered(self) -> list[FlatTask]:
        """Fully expanded rows; CLI numbers are 1-based indexes into this."""
        return self.flatten()

    def totals(self) -> ChildStats:
        """Done/total counts across the whole forest."""
        tasks = [node.task for node in self.nodes.values()]
        return ChildStats(total=len(tasks), done=sum(1 for t in tasks if t.is_done))

    @staticmethod
    def _push_group(
        stack: list[tuple[str, int, bool, tuple[bool, ...]]],
        ids: list[str],
        depth: int,
        ancestors_last: tuple[bool, ...],
    ) -> None:
        last_index = len(ids) - 1
        for index in range(last_index, -1, -1):
            stack.append((ids[index], depth, index == last_index, ancestors_last))


def build_forest(tasks: Iterable[Task]) -> TaskForest:
    """
    Build a forest from flat records.

    Records are expected in position order (as ``TaskStore.list_all``
    returns them); children keep that order. Tasks whose parent is not
    in the set are treated as roots rather than dropped.
    """
    forest = TaskForest()
    ordered: list[Task] = []

    for task in tasks:
        forest.nodes[task.id] = TaskNode(task=task)
        ordered.append(task)

    for task in ordered:
        parent = forest.nodes.get(task.parent_id) if task.parent_id else None
        if parent is not None and parent.id != task.id:
            parent.child_ids.append(task.id)
        else:
            forest.root_ids.append(task.id)

    return forest
