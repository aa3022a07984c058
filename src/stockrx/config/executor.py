"""Operational settings for data patch runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .env import env_bool, env_int

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_BATCH_SIZE = 1000
DEFAULT_MEMORY_LIMIT_MB = 500
DEFAULT_TIMEOUT_SECONDS = 3600


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    dry_run: bool = False


def get_executor_config(env: Mapping[str, str] | None = None) -> ExecutorConfig:
    """Read ``BATCH_SIZE``, ``MEMORY_LIMIT``, ``TIMEOUT`` and ``DRY_RUN``."""

    environ = os.environ if env is None else env
    return ExecutorConfig(
        batch_size=env_int(environ, "BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        memory_limit_mb=env_int(environ, "MEMORY_LIMIT", DEFAULT_MEMORY_LIMIT_MB, minimum=1),
        timeout_seconds=env_int(environ, "TIMEOUT", DEFAULT_TIMEOUT_SECONDS, minimum=0),
        dry_run=env_bool(environ, "DRY_RUN", False),
    )
