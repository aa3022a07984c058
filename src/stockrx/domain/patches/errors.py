"""Errors raised by data patches, the patch registry and the batch driver."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stockrx.domain.patches.driver import ExecutionStatistics


class DataPatchError(RuntimeError):
    """Base error for the data patch subsystem."""


class PatchOptionError(DataPatchError, ValueError):
    """Invalid patch option, raised while the patch is constructed."""

    def __init__(self, option: str, constraint: str, value: object) -> None:
        super().__init__(f"{option} {constraint} (got {value!r})")
        self.option = option
        self.constraint = constraint
        self.value = value


class RegistryError(DataPatchError):
    pass


class PatchNotFoundError(RegistryError, LookupError):
    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        self.available = sorted(available)
        super().__init__(f"Data patch not found: {name}")


class DuplicatePatchError(RegistryError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Data patch already registered: {name}")
        self.name = name


class InvalidPatchClassError(RegistryError, TypeError):
    pass


class ExecutionError(DataPatchError):
    """Run-fatal error; ``statistics`` holds whatever was gathered before the abort."""

    def __init__(self, message: str, statistics: ExecutionStatistics | None = None) -> None:
        super().__init__(message)
        self.statistics = statistics


class StalledBatchError(ExecutionError):
    pass


class ExecutionTimeoutError(ExecutionError):
    pass


class PatchLockedError(ExecutionError):
    def __init__(self, patch_name: str) -> None:
        super().__init__(f"Data patch is already running elsewhere: {patch_name}")
        self.patch_name = patch_name


class PatchLockLostError(ExecutionError):
    def __init__(self, patch_name: str) -> None:
        super().__init__(f"Lost the run lock for data patch {patch_name}; stopping")
        self.patch_name = patch_name
