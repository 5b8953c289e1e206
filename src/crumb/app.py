"""
Application context.

Wires the store, mutation engine, undo history, batch applier and
instruction processor together. Frontends hold one context for their
lifetime and route undoable actions through ``perform``.
"""

import logging
from typing import Callable, Iterable, Optional, Self, TypeVar

from crumb.assistant.processor import InstructionProcessor, LLMClient
from crumb.core.config import CrumbConfig
from crumb.tasks.batch import BatchApplier, BatchResult
from crumb.tasks.engine import TaskEngine
from crumb.tasks.operations import TaskOperation
from crumb.tasks.store import TaskStore
from crumb.tasks.tree import TaskForest, build_forest
from crumb.tasks.undo import UndoManager


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CrumbContext:
    """Top-level owner of the task core components."""

    def __init__(
        self,
        config: CrumbConfig,
        store: TaskStore,
        llm_client: Optional[LLMClient] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.engine = TaskEngine(store)
        self.undo = UndoManager(store, max_depth=config.undo.max_depth)
        self.batch = BatchApplier(self.engine)
        self.processor = InstructionProcessor(config.assistant, llm_client=llm_client)

    @classmethod
    def open(
        cls,
        config: CrumbConfig | None = None,
        llm_client: Optional[LLMClient] = None,
    ) -> Self:
        """Open the configured database and build a context around it."""
        config = config or CrumbConfig.load()
        store = TaskStore(config.db_path)
        store.initialize()
        logger.debug(f"Opened crumb context on {config.db_path}")
        return cls(config, store, llm_client=llm_client)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def forest(self) -> TaskForest:
        """Fresh tree projection of the store."""
        return build_forest(self.store.list_all())

    def perform(self, action: Callable[[], T]) -> T:
        """Run a mutation with an undo snapshot taken first."""
        with self.undo.record():
            return action()

    def apply_operations(self, operations: Iterable[TaskOperation]) -> BatchResult:
        """Apply a batch as one undoable step."""
        return self.perform(lambda: self.batch.apply(operations))
