"""Crumb custom exception hierarchy."""

from typing import Any


class CrumbError(Exception):
    """Base exception for all crumb errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(CrumbError):
    """Raised when configuration is invalid or missing."""

    pass


# =============================================================================
# Task Core Exceptions
# =============================================================================


class TaskError(CrumbError):
    """Base exception for task tree operations."""

    pass


class TaskNotFoundError(TaskError):
    """Raised when a referenced task id does not exist."""

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if task_id:
            details["task_id"] = task_id
        super().__init__(message, details)
        self.task_id = task_id


class InvalidStructureError(TaskError):
    """Raised when a structural change would break the tree."""

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        target_id: str | None = None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if task_id:
            details["task_id"] = task_id
        if target_id:
            details["target_id"] = target_id
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.task_id = task_id
        self.target_id = target_id
        self.reason = reason


class TitleValidationError(TaskError):
    """Raised when a task title is empty or too long."""

    pass


class StorageError(TaskError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


# =============================================================================
# Batch Operation Exceptions
# =============================================================================


class OperationParseError(CrumbError):
    """Raised when a raw operation list does not match the operation schema."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if index is not None:
            details["index"] = index
        super().__init__(message, details)
        self.index = index


class BatchApplyError(CrumbError):
    """Raised when a batch step fails. Nothing from the batch is kept."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        op: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if index is not None:
            details["index"] = index
        if op:
            details["op"] = op
        super().__init__(message, details)
        self.index = index
        self.op = op


# =============================================================================
# Assistant Exceptions
# =============================================================================


class InstructionError(CrumbError):
    """Raised inside the instruction processor when the model call fails."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.reason = reason


# =============================================================================
# CLI Exceptions
# =============================================================================


class TaskReferenceError(CrumbError):
    """Raised when a CLI task reference cannot be resolved."""

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if reference is not None:
            details["reference"] = reference
        super().__init__(message, details)
        self.reference = reference
