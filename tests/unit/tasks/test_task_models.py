"""
Unit tests for task models.

Tests cover:
- ULID generation and ordering
- Title normalization
- Task serialization
"""

from datetime import datetime, timezone

import pytest

from crumb.core.exceptions import TitleValidationError
from crumb.tasks import (
    ChildStats,
    MAX_TASK_TITLE_LENGTH,
    Task,
    TaskStatus,
    generate_task_id,
    normalize_title,
    validate_task_id,
)


class TestTaskIds:
    """Tests for task id generation."""

    def test_generated_id_is_valid_ulid(self):
        """Test generated ids match the ULID format."""
        task_id = generate_task_id()
        assert len(task_id) == 26
        assert validate_task_id(task_id)

    def test_ids_are_unique_and_sorted(self):
        """Test ids generated in sequence sort in sequence."""
        ids = [generate_task_id() for _ in range(500)]
        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)

    def test_invalid_ids_rejected(self):
        """Test malformed ids fail validation."""
        assert not validate_task_id("")
        assert not validate_task_id("not-a-ulid")
        assert not validate_task_id("0" * 25)
        assert not validate_task_id("I" * 26)


class TestNormalizeTitle:
    """Tests for title validation."""

    def test_strips_whitespace(self):
        assert normalize_title("  Buy milk \n") == "Buy milk"

    @pytest.mark.parametrize("title", ["", "   ", "\t\n", None])
    def test_blank_title_rejected(self, title):
        """Test empty and whitespace-only titles raise."""
        with pytest.raises(TitleValidationError):
            normalize_title(title)

    def test_overlong_title_rejected(self):
        """Test titles over the length limit raise."""
        with pytest.raises(TitleValidationError):
            normalize_title("x" * (MAX_TASK_TITLE_LENGTH + 1))

    def test_title_at_limit_accepted(self):
        assert len(normalize_title("x" * MAX_TASK_TITLE_LENGTH)) == MAX_TASK_TITLE_LENGTH


class TestTask:
    """Tests for the Task record."""

    def test_defaults(self):
        """Test a new task is a todo root at position zero."""
        task = Task(title="Write tests")
        assert task.status == TaskStatus.TODO
        assert task.parent_id is None
        assert task.position == 0
        assert task.is_root
        assert not task.is_done
        assert validate_task_id(task.id)

    def test_status_string_coerced(self):
        task = Task(title="A", status="done")
        assert task.status is TaskStatus.DONE
        assert task.is_done

    def test_dict_roundtrip(self):
        """Test to_dict/from_dict preserves every field."""
        created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        task = Task(
            title="Child",
            status=TaskStatus.DONE,
            parent_id=generate_task_id(),
            position=3,
            created_at=created,
            updated_at=created,
        )
        restored = Task.from_dict(task.to_dict())
        assert restored == task

    def test_naive_timestamp_treated_as_utc(self):
        data = Task(title="A").to_dict()
        data["created_at"] = "2024-01-02T03:04:05"
        restored = Task.from_dict(data)
        assert restored.created_at.tzinfo == timezone.utc

    def test_copy_replaces_fields(self):
        task = Task(title="A")
        moved = task.copy(position=7)
        assert moved.position == 7
        assert moved.id == task.id
        assert task.position == 0

    def test_toggled_status(self):
        assert TaskStatus.TODO.toggled() is TaskStatus.DONE
        assert TaskStatus.DONE.toggled() is TaskStatus.TODO


class TestChildStats:
    """Tests for child aggregate counts."""

    def test_all_done_requires_children(self):
        """Test a task with no children is not 'all done'."""
        assert not ChildStats(total=0, done=0).all_done

    def test_all_done(self):
        assert ChildStats(total=2, done=2).all_done
        assert not ChildStats(total=2, done=1).all_done
