"""Batch data patches: contract, registry, built-in patches and executor."""

from __future__ import annotations

from .batch_expiry import BatchExpiryUpdate
from .builtin import BATCH_EXPIRY_UPDATE, PRICE_ADJUSTMENT, register_builtin_patches
from .contract import BatchResult, DataPatch, RecordOutcome
from .driver import BatchExecutionDriver, ExecutionSettings, ExecutionStatistics
from .errors import (
    DataPatchError,
    DuplicatePatchError,
    ExecutionError,
    ExecutionTimeoutError,
    InvalidPatchClassError,
    PatchLockLostError,
    PatchLockedError,
    PatchNotFoundError,
    PatchOptionError,
    RegistryError,
    StalledBatchError,
)
from .executor import (
    ExecutionReport,
    ImpactEstimate,
    PatchExecutor,
    estimate_memory_mb,
    lock_ttl_seconds,
)
from .price_adjustment import AdjustmentType, InventoryPriceAdjustment, adjusted_price
from .registry import (
    PatchMetadata,
    PatchRegistration,
    PatchRegistry,
    PatchSource,
    RegistryStatistics,
)

__all__ = [
    "BATCH_EXPIRY_UPDATE",
    "PRICE_ADJUSTMENT",
    "AdjustmentType",
    "BatchExecutionDriver",
    "BatchExpiryUpdate",
    "BatchResult",
    "DataPatch",
    "DataPatchError",
    "DuplicatePatchError",
    "ExecutionError",
    "ExecutionReport",
    "ExecutionSettings",
    "ExecutionStatistics",
    "ExecutionTimeoutError",
    "ImpactEstimate",
    "InvalidPatchClassError",
    "InventoryPriceAdjustment",
    "PatchExecutor",
    "PatchLockLostError",
    "PatchLockedError",
    "PatchMetadata",
    "PatchNotFoundError",
    "PatchOptionError",
    "PatchRegistration",
    "PatchRegistry",
    "PatchSource",
    "RecordOutcome",
    "RegistryError",
    "RegistryStatistics",
    "StalledBatchError",
    "adjusted_price",
    "estimate_memory_mb",
    "lock_ttl_seconds",
    "register_builtin_patches",
]
