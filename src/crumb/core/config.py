"""Crumb configuration loading and validation."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from crumb.core.constants import (
    DEFAULT_ASSISTANT_API_BASE_URL,
    DEFAULT_ASSISTANT_API_KEY_ENV,
    DEFAULT_ASSISTANT_MAX_RETRIES,
    DEFAULT_ASSISTANT_MAX_TOKENS,
    DEFAULT_ASSISTANT_MODEL,
    DEFAULT_ASSISTANT_RETRY_DELAY_SECONDS,
    DEFAULT_ASSISTANT_TIMEOUT_SECONDS,
    DEFAULT_DB_NAME,
    DEFAULT_LOG_LEVEL,
    DEFAULT_UNDO_DEPTH,
    get_config_path,
    get_crumb_root,
)
from crumb.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class StorageConfig:
    """Storage paths configuration."""

    db_name: str = DEFAULT_DB_NAME


@dataclass(frozen=True)
class UndoConfig:
    """Undo history configuration."""

    max_depth: int = DEFAULT_UNDO_DEPTH

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"undo.max_depth must be at least 1, got {self.max_depth}")


@dataclass(frozen=True)
class AssistantConfig:
    """Instruction processor configuration."""

    model: str = DEFAULT_ASSISTANT_MODEL
    api_base_url: str = DEFAULT_ASSISTANT_API_BASE_URL
    api_key_env: str = DEFAULT_ASSISTANT_API_KEY_ENV
    max_tokens: int = DEFAULT_ASSISTANT_MAX_TOKENS
    temperature: float = 0.0
    timeout_seconds: float = DEFAULT_ASSISTANT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_ASSISTANT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_ASSISTANT_RETRY_DELAY_SECONDS


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL


@dataclass(frozen=True)
class CrumbConfig:
    """Complete crumb configuration."""

    version: str = "1.0"
    data_dir: Path | None = None
    storage: StorageConfig = field(default_factory=StorageConfig)
    undo: UndoConfig = field(default_factory=UndoConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def root(self) -> Path:
        """Resolved data directory."""
        return get_crumb_root(self.data_dir)

    @property
    def db_path(self) -> Path:
        """Full path of the task database."""
        return self.root / self.storage.db_name

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_path: Path | None = None) -> Self:
        """Create config from dictionary."""
        return cls(
            version=data.get("version", "1.0"),
            data_dir=base_path,
            storage=StorageConfig(**data.get("storage", {})),
            undo=UndoConfig(**data.get("undo", {})),
            assistant=AssistantConfig(**data.get("assistant", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    @classmethod
    def load(cls, base_path: Path | None = None) -> Self:
        """Load configuration from file or use defaults."""
        config_path = get_config_path(base_path)

        if not config_path.exists():
            return cls(data_dir=base_path)

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data, base_path=base_path)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                details={"path": str(config_path)},
            ) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration values: {e}",
                details={"path": str(config_path)},
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "version": self.version,
            "storage": {
                "db_name": self.storage.db_name,
            },
            "undo": {
                "max_depth": self.undo.max_depth,
            },
            "assistant": {
                "model": self.assistant.model,
                "api_base_url": self.assistant.api_base_url,
                "api_key_env": self.assistant.api_key_env,
                "max_tokens": self.assistant.max_tokens,
                "temperature": self.assistant.temperature,
                "timeout_seconds": self.assistant.timeout_seconds,
                "max_retries": self.assistant.max_retries,
                "retry_delay_seconds": self.assistant.retry_delay_seconds,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

    def save(self) -> None:
        """Save configuration to file."""
        config_path = get_config_path(self.data_dir)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
