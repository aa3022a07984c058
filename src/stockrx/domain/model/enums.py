"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class InventoryStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    OUT_OF_STOCK = "out_of_stock"
    EXPIRING_SOON = "expiring_soon"


class BatchStatus(StrEnum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    CONSUMED = "consumed"


class TransferStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LogOperation(StrEnum):
    """Operation types recorded on inventory logs."""

    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"
    SHIP = "ship"
    RECEIVE = "receive"
    BATCH_EXPIRY_UPDATE = "batch_expiry_update"
