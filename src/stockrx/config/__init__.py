"""Application configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError, InvalidConfigurationValueError
from .executor import ExecutorConfig, get_executor_config
from .logging import configure_logging
from .options import PATCH_OPTION_KEYS, parse_patch_options
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_patch_config_path,
    get_storage_config,
)

__all__ = [
    "PATCH_OPTION_KEYS",
    "ConfigurationError",
    "DatabaseConfig",
    "ExecutorConfig",
    "InvalidConfigurationValueError",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_executor_config",
    "get_patch_config_path",
    "get_storage_config",
    "parse_patch_options",
]
