"""Public domain model surface."""

from __future__ import annotations

from stockrx.domain.model.enums import BatchStatus, InventoryStatus, LogOperation, TransferStatus
from stockrx.domain.model.inventory import Batch, Inventory, InventoryLog, Receipt, Shipment
from stockrx.domain.model.store import InterStoreTransfer, Store, StoreInventory

__all__ = [
    "Batch",
    "BatchStatus",
    "InterStoreTransfer",
    "Inventory",
    "InventoryLog",
    "InventoryStatus",
    "LogOperation",
    "Receipt",
    "Shipment",
    "Store",
    "StoreInventory",
    "TransferStatus",
]
