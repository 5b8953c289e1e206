"""
Unit tests for the mutation engine.

Tests cover:
- Create and rename with title validation
- Completion propagation and its asymmetry with delete
- Cascading delete
- Move with cycle rejection
- Sibling reorder, indent and outdent
"""

import pytest

from crumb.core.exceptions import (
    InvalidStructureError,
    TaskNotFoundError,
    TitleValidationError,
)
from crumb.tasks import ReorderDirection, TaskStatus, build_forest

MISSING_ID = "01ARZ3NDEKTSV4RRFFQ69G5FAV"


def _titles(store, parent_id=None) -> list[str]:
    return [t.title for t in store.list_children(parent_id)]


def _status(store, task_id) -> TaskStatus:
    return store.get(task_id).status


class TestCreate:
    """Tests for task creation."""

    def test_create_root(self, engine, store):
        task = engine.create("  Buy milk  ")

        assert task.title == "Buy milk"
        assert task.parent_id is None
        assert store.get(task.id).title == "Buy milk"

    def test_create_appends_to_group(self, engine, store):
        """Test new tasks go to the end of their sibling group."""
        first = engine.create("First")
        second = engine.create("Second")

        assert second.position > first.position
        assert _titles(store) == ["First", "Second"]

    def test_create_child(self, engine, store):
        parent = engine.create("Parent")
        child = engine.create("Child", parent.id)

        assert child.parent_id == parent.id
        assert child.position == 0
        assert _titles(store, parent.id) == ["Child"]

    def test_create_blank_title_rejected(self, engine, store):
        """Test blank titles never reach the store."""
        with pytest.raises(TitleValidationError):
            engine.create("   ")
        assert store.count() == 0

    def test_create_missing_parent(self, engine, store):
        with pytest.raises(TaskNotFoundError):
            engine.create("Child", MISSING_ID)
        assert store.count() == 0


class TestRename:
    """Tests for renaming."""

    def test_rename(self, engine, store):
        task = engine.create("Old")
        assert engine.rename(task.id, " New ")
        assert store.get(task.id).title == "New"

    def test_rename_missing(self, engine):
        assert not engine.rename(MISSING_ID, "New")

    def test_rename_blank_rejected(self, engine, store):
        task = engine.create("Keep")
        with pytest.raises(TitleValidationError):
            engine.rename(task.id, "")
        assert store.get(task.id).title == "Keep"


class TestCompletion:
    """Tests for status changes and upward propagation."""

    def test_complete_leaf(self, engine, store):
        task = engine.create("Leaf")
        assert engine.complete(task.id)
        assert _status(store, task.id) == TaskStatus.DONE

    def test_complete_missing(self, engine):
        assert not engine.complete(MISSING_ID)

    def test_parent_waits_for_all_children(self, engine, store):
        """Test completing one of two children leaves the parent open."""
        parent = engine.create("Parent")
        a = engine.create("A", parent.id)
        engine.create("B", parent.id)

        engine.complete(a.id)

        assert _status(store, parent.id) == TaskStatus.TODO

    def test_last_child_completes_parent(self, engine, store):
        parent = engine.create("Parent")
        a = engine.create("A", parent.id)
        b = engine.create("B", parent.id)

        engine.complete(a.id)
        engine.complete(b.id)

        assert _status(store, parent.id) == TaskStatus.DONE

    def test_propagates_up_the_chain(self, engine, store):
        """Test one call completes every eligible ancestor."""
        root = engine.create("Root")
        middle = engine.create("Middle", root.id)
        leaf = engine.create("Leaf", middle.id)

        engine.complete(leaf.id)

        assert _status(store, middle.id) == TaskStatus.DONE
        assert _status(store, root.id) == TaskStatus.DONE

    def test_propagation_stops_at_incomplete_level(self, engine, store):
        root = engine.create("Root")
        middle = engine.create("Middle", root.id)
        engine.create("Sibling of middle", root.id)
        leaf = engine.create("Leaf", middle.id)

        engine.complete(leaf.id)

        assert _status(store, middle.id) == TaskStatus.DONE
        assert _status(store, root.id) == TaskStatus.TODO

    def test_reopen_does_not_propagate(self, engine, store):
        """Test reopening a child leaves a done parent done."""
        parent = engine.create("Parent")
        child = engine.create("Child", parent.id)
        engine.complete(child.id)

        assert engine.reopen(child.id)

        assert _status(store, child.id) == TaskStatus.TODO
        assert _status(store, parent.id) == TaskStatus.DONE

    def test_toggle(self, engine, store):
        parent = engine.create("Parent")
        child = engine.create("Child", parent.id)

        assert engine.toggle(child.id)
        assert _status(store, parent.id) == TaskStatus.DONE

        assert engine.toggle(child.id)
        assert _status(store, child.id) == TaskStatus.TODO

    def test_toggle_missing(self, engine):
        assert not engine.toggle(MISSING_ID)

    def test_set_status_has_no_propagation(self, engine, store):
        parent = engine.create("Parent")
        child = engine.create("Child", parent.id)

        engine.set_status(child.id, TaskStatus.DONE)

        assert _status(store, parent.id) == TaskStatus.TODO


class TestDelete:
    """Tests for cascading delete."""

    def test_delete_removes_subtree(self, engine, store):
        root = engine.create("Root")
        child = engine.create("Child", root.id)
        engine.create("Grandchild", child.id)
        keep = engine.create("Keep")

        assert engine.delete(root.id)

        assert [t.id for t in store.list_all()] == [keep.id]

    def test_delete_missing(self, engine):
        assert not engine.delete(MISSING_ID)

    def test_delete_does_not_complete_parent(self, engine, store):
        """Deleting the last open child must not auto-complete the parent."""
        parent = engine.create("Parent")
        done = engine.create("Done", parent.id)
        open_a = engine.create("Open A", parent.id)
        open_b = engine.create("Open B", parent.id)
        engine.complete(done.id)

        engine.delete(open_a.id)
        engine.delete(open_b.id)

        assert store.child_stats(parent.id).all_done
        assert _status(store, parent.id) == TaskStatus.TODO

    def test_clear_all(self, engine, store):
        root = engine.create("Root")
        engine.create("Child", root.id)

        assert engine.clear_all() == 2
        assert store.count() == 0


class TestMove:
    """Tests for reparenting."""

    def test_move_under_other(self, engine, store):
        a = engine.create("A")
        b = engine.create("B")
        engine.create("B child", b.id)

        assert engine.move(a.id, b.id)

        assert store.parent_of(a.id) == b.id
        assert _titles(store, b.id) == ["B child", "A"]

    def test_move_to_root(self, engine, store):
        parent = engine.create("Parent")
        child = engine.create("Child", parent.id)

        assert engine.move(child.id, None)

        assert store.parent_of(child.id) is None
        assert _titles(store) == ["Parent", "Child"]

    def test_move_same_parent_reappends(self, engine, store):
        a = engine.create("A")
        engine.create("B")

        assert engine.move(a.id, None)

        assert _titles(store) == ["B", "A"]

    def test_move_missing_task(self, engine):
        target = engine.create("Target")
        assert not engine.move(MISSING_ID, target.id)

    def test_move_missing_target(self, engine, store):
        task = engine.create("Task")
        with pytest.raises(TaskNotFoundError):
            engine.move(task.id, MISSING_ID)
        assert store.parent_of(task.id) is None

    def test_move_under_self_rejected(self, engine):
        task = engine.create("Task")
        with pytest.raises(InvalidStructureError) as exc_info:
            engine.move(task.id, task.id)
        assert exc_info.value.reason == "self"

    def test_move_under_descendant_rejected_deep(self, engine, store):
        """Test cycle rejection on an arbitrarily deep chain."""
        root = engine.create("Level 0")
        current = root
        for level in range(1, 60):
            current = engine.create(f"Level {level}", current.id)
        before = store.list_all()

        with pytest.raises(InvalidStructureError) as exc_info:
            engine.move(root.id, current.id)

        assert exc_info.value.reason == "descendant"
        assert store.list_all() == before

    def test_is_descendant(self, engine):
        root = engine.create("Root")
        child = engine.create("Child", root.id)
        grandchild = engine.create("Grandchild", child.id)

        assert engine.is_descendant(grandchild.id, root.id)
        assert not engine.is_descendant(root.id, grandchild.id)
        assert not engine.is_descendant(root.id, root.id)


class TestReorder:
    """Tests for sibling reordering."""

    def test_move_up(self, engine, store):
        engine.create("A")
        b = engine.create("B")
        engine.create("C")

        assert engine.reorder_sibling(b.id, ReorderDirection.UP)

        assert _titles(store) == ["B", "A", "C"]

    def test_move_down(self, engine, store):
        a = engine.create("A")
        engine.create("B")

        assert engine.reorder_sibling(a.id, "down")

        assert _titles(store) == ["B", "A"]

    def test_first_cannot_move_up(self, engine, store):
        a = engine.create("A")
        engine.create("B")

        assert not engine.reorder_sibling(a.id, ReorderDirection.UP)
        assert _titles(store) == ["A", "B"]

    def test_last_cannot_move_down(self, engine):
        engine.create("A")
        b = engine.create("B")
        assert not engine.reorder_sibling(b.id, ReorderDirection.DOWN)

    def test_reorder_missing(self, engine):
        assert not engine.reorder_sibling(MISSING_ID, ReorderDirection.UP)

    def test_reorder_only_within_group(self, engine, store):
        """Test reordering a child never crosses into another group."""
        parent = engine.create("Parent")
        only = engine.create("Only child", parent.id)
        engine.create("Next root")

        assert not engine.reorder_sibling(only.id, ReorderDirection.DOWN)
        assert store.parent_of(only.id) == parent.id

    def test_tied_positions_still_swap(self, engine, store):
        """Test siblings sharing a position still change order."""
        a = engine.create("A")
        b = engine.create("B")
        store.update_fields(b.id, position=a.position)
        assert _titles(store) == ["A", "B"]

        assert engine.reorder_sibling(b.id, ReorderDirection.UP)

        assert _titles(store) == ["B", "A"]

    @pytest.mark.parametrize(
        "moved, direction, expected",
        [
            ("C", ReorderDirection.UP, ["A", "C", "B"]),
            ("A", ReorderDirection.DOWN, ["B", "A", "C"]),
            ("B", ReorderDirection.UP, ["B", "A", "C"]),
            ("B", ReorderDirection.DOWN, ["A", "C", "B"]),
        ],
    )
    def test_three_tied_siblings_swap_adjacent(self, engine, store, moved, direction, expected):
        """Test a tied move only swaps with its neighbour, never past it."""
        tasks = {title: engine.create(title) for title in ("A", "B", "C")}
        store.update_fields(tasks["B"].id, position=tasks["A"].position)
        store.update_fields(tasks["C"].id, position=tasks["A"].position)
        assert _titles(store) == ["A", "B", "C"]

        assert engine.reorder_sibling(tasks[moved].id, direction)

        assert _titles(store) == expected

    def test_tied_pair_after_distinct_first(self, engine, store):
        """Test a tie elsewhere in the group does not break a swap."""
        a = engine.create("A")
        b = engine.create("B")
        c = engine.create("C")
        store.update_fields(c.id, position=b.position)

        assert engine.reorder_sibling(a.id, ReorderDirection.DOWN)

        assert _titles(store) == ["B", "A", "C"]
        positions = [t.position for t in store.list_children(None)]
        assert positions == sorted(set(positions))


class TestIndentOutdent:
    """Tests for indent and outdent."""

    def test_indent_under_previous_sibling(self, engine, store):
        a = engine.create("A")
        engine.create("A child", a.id)
        b = engine.create("B")

        assert engine.indent(b.id)

        assert store.parent_of(b.id) == a.id
        assert _titles(store, a.id) == ["A child", "B"]

    def test_first_sibling_cannot_indent(self, engine, store):
        a = engine.create("A")
        assert not engine.indent(a.id)
        assert store.parent_of(a.id) is None

    def test_indent_missing(self, engine):
        assert not engine.indent(MISSING_ID)

    def test_outdent_to_grandparent(self, engine, store):
        root = engine.create("Root")
        middle = engine.create("Middle", root.id)
        leaf = engine.create("Leaf", middle.id)

        assert engine.outdent(leaf.id)

        assert store.parent_of(leaf.id) == root.id
        assert _titles(store, root.id) == ["Middle", "Leaf"]

    def test_outdent_child_of_root(self, engine, store):
        root = engine.create("Root")
        child = engine.create("Child", root.id)
        engine.create("Other root")

        assert engine.outdent(child.id)

        assert store.parent_of(child.id) is None
        assert _titles(store) == ["Root", "Other root", "Child"]

    def test_root_cannot_outdent(self, engine):
        root = engine.create("Root")
        assert not engine.outdent(root.id)

    def test_sibling_order_matches_display(self, engine, store):
        """Test group order stays consistent with the flattened rows."""
        a = engine.create("A")
        b = engine.create("B")
        c = engine.create("C")
        d = engine.create("D")

        engine.indent(b.id)
        engine.indent(c.id)
        engine.reorder_sibling(c.id, ReorderDirection.UP)
        engine.outdent(b.id)
        engine.move(d.id, a.id)
        engine.reorder_sibling(d.id, ReorderDirection.UP)

        rows = build_forest(store.list_all()).flatten()
        assert [(r.task.title, r.depth) for r in rows] == [
            ("A", 0),
            ("D", 1),
            ("C", 1),
            ("B", 0),
        ]
        for parent_id in (None, a.id):
            positions = [t.position for t in store.list_children(parent_id)]
            assert positions == sorted(positions)
