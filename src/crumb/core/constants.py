"""Crumb system constants and default values."""

import os
from pathlib import Path
from typing import Final


# Directory structure
CRUMB_ROOT_DIR: Final[str] = ".crumb"
CRUMB_HOME_ENV: Final[str] = "CRUMB_HOME"

# Files
DEFAULT_DB_NAME: Final[str] = "crumb.db"
CONFIG_FILE_NAME: Final[str] = "config.json"

# Undo
DEFAULT_UNDO_DEPTH: Final[int] = 50

# Assistant
DEFAULT_ASSISTANT_MODEL: Final[str] = "claude-sonnet-4-20250514"
DEFAULT_ASSISTANT_API_BASE_URL: Final[str] = "https://api.anthropic.com"
DEFAULT_ASSISTANT_API_KEY_ENV: Final[str] = "ANTHROPIC_API_KEY"
ANTHROPIC_API_VERSION: Final[str] = "2023-06-01"
# Client errors worth another attempt: request timeout, rate limited
RETRYABLE_CLIENT_STATUSES: Final[frozenset[int]] = frozenset({408, 429})
DEFAULT_ASSISTANT_MAX_TOKENS: Final[int] = 2000
DEFAULT_ASSISTANT_TIMEOUT_SECONDS: Final[float] = 60.0
DEFAULT_ASSISTANT_MAX_RETRIES: Final[int] = 2
DEFAULT_ASSISTANT_RETRY_DELAY_SECONDS: Final[float] = 1.0

# Logging
DEFAULT_LOG_LEVEL: Final[str] = "WARNING"
LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_crumb_root(base_path: Path | None = None) -> Path:
    """Get the crumb data directory path.

    An explicit base path wins, then the CRUMB_HOME environment variable,
    then ``~/.crumb``.
    """
    if base_path is not None:
        return Path(base_path)
    env_home = os.environ.get(CRUMB_HOME_ENV)
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / CRUMB_ROOT_DIR


def get_config_path(base_path: Path | None = None) -> Path:
    """Get the config file path."""
    return get_crumb_root(base_path) / CONFIG_FILE_NAME
