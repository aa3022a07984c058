"""Domain ports (interfaces) for adapters to implement."""

from __future__ import annotations

from .locking import NullPatchLock, PatchLock
from .persistence import (
    BatchRepository,
    CounterRepository,
    InventoryRepository,
    Repository,
)
from .unit_of_work import (
    MaintenanceRepositories,
    MaintenanceUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BatchRepository",
    "CounterRepository",
    "InventoryRepository",
    "MaintenanceRepositories",
    "MaintenanceUnitOfWork",
    "NullPatchLock",
    "PatchLock",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
