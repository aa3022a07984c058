"""Registration of the patches shipped with stockrx."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .batch_expiry import BatchExpiryUpdate
from .price_adjustment import InventoryPriceAdjustment
from .registry import PatchMetadata

if TYPE_CHECKING:
    from .registry import PatchRegistry

PRICE_ADJUSTMENT = "inventory_price_adjustment"
BATCH_EXPIRY_UPDATE = "batch_expiry_update"

BUILTIN_PATCHES = {
    PRICE_ADJUSTMENT: (
        InventoryPriceAdjustment,
        PatchMetadata(
            description="Bulk inventory price adjustment (tax changes, supplier costs, campaigns)",
            category="inventory",
            target_tables=("inventories", "inventory_logs"),
            estimated_records=1000,
            memory_limit=256,
            batch_size=100,
            source="builtin",
            tags=("price", "adjustment", "inventory", "bulk_update"),
            risk_level="medium",
        ),
    ),
    BATCH_EXPIRY_UPDATE: (
        BatchExpiryUpdate,
        PatchMetadata(
            description="Mark expired and soon-to-expire batches and update inventory status",
            category="maintenance",
            target_tables=("batches", "inventories", "inventory_logs"),
            estimated_records=500,
            memory_limit=128,
            batch_size=50,
            source="builtin",
            tags=("batch", "expiry", "maintenance"),
            risk_level="low",
        ),
    ),
}


def register_builtin_patches(registry: PatchRegistry) -> None:
    for name, (patch_class, metadata) in BUILTIN_PATCHES.items():
        registry.register_patch(name, patch_class, metadata)
