"""Unit tests for CLI task reference resolution."""

import pytest

from crumb.cli.resolve import resolve_task
from crumb.core.exceptions import TaskReferenceError
from crumb.tasks import Task, build_forest


@pytest.fixture
def rows():
    root = Task(id="01HZZAAAAAAAAAAAAAAAAAAAAA", title="Root")
    child = Task(id="01HZZAAAAAAAAAAAAAAAAAAAAB", title="Child", parent_id=root.id)
    other = Task(id="01HZZBBBBBBBBBBBBBBBBBBBBB", title="Other", position=1)
    return build_forest([root, child, other]).numbered()


class TestResolveTask:
    """Tests for number and id-prefix references."""

    def test_number_follows_display_order(self, rows):
        assert resolve_task("1", rows).title == "Root"
        assert resolve_task("2", rows).title == "Child"
        assert resolve_task(" 3 ", rows).title == "Other"

    @pytest.mark.parametrize("reference", ["0", "4"])
    def test_number_out_of_range(self, rows, reference):
        with pytest.raises(TaskReferenceError):
            resolve_task(reference, rows)

    def test_unique_prefix(self, rows):
        assert resolve_task("01hzzb", rows).title == "Other"

    def test_full_id(self, rows):
        assert resolve_task("01HZZAAAAAAAAAAAAAAAAAAAAB", rows).title == "Child"

    def test_ambiguous_prefix(self, rows):
        with pytest.raises(TaskReferenceError) as exc_info:
            resolve_task("01HZZA", rows)
        assert "matches 2 tasks" in exc_info.value.message

    def test_unknown_prefix(self, rows):
        with pytest.raises(TaskReferenceError):
            resolve_task("ZZZ", rows)

    def test_empty_reference(self, rows):
        with pytest.raises(TaskReferenceError):
            resolve_task("  ", rows)

    def test_no_tasks(self):
        with pytest.raises(TaskReferenceError) as exc_info:
            resolve_task("1", [])
        assert exc_info.value.reference == "1"
