"""Data patch configuration file adapter."""

from __future__ import annotations

from .loader import (
    STARTER_CONFIG,
    config_file_source,
    load_patch_config,
    read_patch_config,
    resolve_class,
    write_starter_config,
)
from .schema import (
    PatchConfigFile,
    PatchEntry,
    ScheduledExpiryUpdate,
    SchedulingSettings,
    SecuritySettings,
)

__all__ = [
    "STARTER_CONFIG",
    "PatchConfigFile",
    "PatchEntry",
    "ScheduledExpiryUpdate",
    "SchedulingSettings",
    "SecuritySettings",
    "config_file_source",
    "load_patch_config",
    "read_patch_config",
    "resolve_class",
    "write_starter_config",
]
