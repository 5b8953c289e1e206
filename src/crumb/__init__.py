"""crumb - hierarchical micro-task manager.

An ordered task tree stored in SQLite, with atomic multi-step mutation,
automatic completion of parents and multi-level undo.
"""

__version__ = "0.1.0"

from crumb.core import (
    CrumbConfig,
    CrumbError,
)
from crumb.tasks import (
    Task,
    TaskStatus,
)

__all__ = [
    "__version__",
    # Config
    "CrumbConfig",
    # Base exception
    "CrumbError",
    # Core types
    "Task",
    "TaskStatus",
]
