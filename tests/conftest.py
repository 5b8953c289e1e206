"""Pytest configuration and fixtures for crumb tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from crumb.app import CrumbContext
from crumb.core.config import AssistantConfig, CrumbConfig
from crumb.tasks.batch import BatchApplier
from crumb.tasks.engine import TaskEngine
from crumb.tasks.store import TaskStore
from crumb.tasks.undo import UndoManager


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def store(temp_dir: Path) -> Generator[TaskStore, None, None]:
    """Create an initialized task store backed by a file."""
    task_store = TaskStore(temp_dir / "crumb.db")
    task_store.initialize()
    yield task_store
    task_store.close()


@pytest.fixture
def engine(store: TaskStore) -> TaskEngine:
    """Create a mutation engine over the test store."""
    return TaskEngine(store)


@pytest.fixture
def undo(store: TaskStore) -> UndoManager:
    """Create an undo manager with a small bound."""
    return UndoManager(store, max_depth=5)


@pytest.fixture
def applier(engine: TaskEngine) -> BatchApplier:
    """Create a batch applier."""
    return BatchApplier(engine)


@pytest.fixture
def config(temp_dir: Path) -> CrumbConfig:
    """Configuration rooted in the temporary directory, no retry delay."""
    return CrumbConfig(
        data_dir=temp_dir,
        assistant=AssistantConfig(max_retries=1, retry_delay_seconds=0.0, timeout_seconds=5.0),
    )


@pytest.fixture
def crumb(config: CrumbConfig) -> Generator[CrumbContext, None, None]:
    """Create an opened application context."""
    context = CrumbContext.open(config)
    yield context
    context.close()
