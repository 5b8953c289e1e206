"""Core configuration, constants and exceptions."""

from crumb.core.config import (
    AssistantConfig,
    CrumbConfig,
    LoggingConfig,
    StorageConfig,
    UndoConfig,
)
from crumb.core.exceptions import (
    BatchApplyError,
    ConfigurationError,
    CrumbError,
    InstructionError,
    InvalidStructureError,
    OperationParseError,
    StorageError,
    TaskError,
    TaskNotFoundError,
    TaskReferenceError,
    TitleValidationError,
)

__all__ = [
    "AssistantConfig",
    "CrumbConfig",
    "LoggingConfig",
    "StorageConfig",
    "UndoConfig",
    "BatchApplyError",
    "ConfigurationError",
    "CrumbError",
    "InstructionError",
    "InvalidStructureError",
    "OperationParseError",
    "StorageError",
    "TaskError",
    "TaskNotFoundError",
    "TaskReferenceError",
    "TitleValidationError",
]
