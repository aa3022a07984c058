"""Inventory aggregate: items, lot batches, movement logs, shipments and receipts.

``Inventory`` is the aggregate root. Its child collections are only mutated
through the root so the denormalised counters (``batches_count`` and friends)
move together with the rows they count. Bulk writes that bypass these methods
are what the counter reconciliation engine exists to repair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal

from stockrx.domain.model.enums import BatchStatus, InventoryStatus, LogOperation


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _increment(value: int | None, step: int = 1) -> int:
    return max((value or 0) + step, 0)


@dataclass(eq=False, kw_only=True)
class Batch:
    lot_code: str
    quantity: int = 0
    expires_on: date | None = None
    status: BatchStatus = BatchStatus.ACTIVE
    id: int | None = None
    inventory_id: int | None = field(default=None, init=False)

    def is_expired(self, *, today: date) -> bool:
        return self.expires_on is not None and self.expires_on < today

    def is_active(self) -> bool:
        return self.status not in {BatchStatus.EXPIRED, BatchStatus.CONSUMED}


@dataclass(eq=False, kw_only=True)
class InventoryLog:
    operation_type: LogOperation
    delta: int
    previous_quantity: int
    current_quantity: int
    note: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    id: int | None = None
    inventory_id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class Shipment:
    quantity: int
    destination: str
    shipped_at: datetime = field(default_factory=_utcnow)
    id: int | None = None
    inventory_id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class Receipt:
    quantity: int
    source: str
    received_at: datetime = field(default_factory=_utcnow)
    id: int | None = None
    inventory_id: int | None = field(default=None, init=False)


@dataclass(eq=False, kw_only=True)
class Inventory:
    name: str
    price: Decimal = Decimal("0")
    quantity: int = 0
    status: InventoryStatus = InventoryStatus.ACTIVE
    category: str | None = None
    updated_at: datetime = field(default_factory=_utcnow)
    id: int | None = None

    # counter caches
    batches_count: int | None = 0
    inventory_logs_count: int | None = 0
    shipments_count: int | None = 0
    receipts_count: int | None = 0

    _batches: list[Batch] = field(default_factory=list["Batch"], repr=False)
    _logs: list[InventoryLog] = field(default_factory=list["InventoryLog"], repr=False)
    _shipments: list[Shipment] = field(default_factory=list["Shipment"], repr=False)
    _receipts: list[Receipt] = field(default_factory=list["Receipt"], repr=False)

    @property
    def batches(self) -> tuple[Batch, ...]:
        return tuple(self._batches)

    @property
    def logs(self) -> tuple[InventoryLog, ...]:
        return tuple(self._logs)

    @property
    def shipments(self) -> tuple[Shipment, ...]:
        return tuple(self._shipments)

    @property
    def receipts(self) -> tuple[Receipt, ...]:
        return tuple(self._receipts)

    def add_batch(
        self,
        *,
        lot_code: str,
        quantity: int = 0,
        expires_on: date | None = None,
        status: BatchStatus = BatchStatus.ACTIVE,
    ) -> Batch:
        if any(batch.lot_code == lot_code for batch in self._batches):
            raise ValueError(f"Lot code already used for {self.name}: {lot_code}")
        batch = Batch(lot_code=lot_code, quantity=quantity, expires_on=expires_on, status=status)
        self._batches.append(batch)
        self.batches_count = _increment(self.batches_count)
        return batch

    def remove_batch(self, batch: Batch) -> None:
        self._batches.remove(batch)
        self.batches_count = _increment(self.batches_count, -1)

    def record_log(
        self,
        operation: LogOperation,
        *,
        delta: int = 0,
        note: str | None = None,
    ) -> InventoryLog:
        """Append a movement log; ``delta`` is the quantity change already applied."""

        log_entry = InventoryLog(
            operation_type=operation,
            delta=delta,
            previous_quantity=self.quantity - delta,
            current_quantity=self.quantity,
            note=note,
        )
        self._logs.append(log_entry)
        self.inventory_logs_count = _increment(self.inventory_logs_count)
        return log_entry

    def add_shipment(self, *, quantity: int, destination: str) -> Shipment:
        if quantity <= 0:
            raise ValueError("Shipment quantity must be positive")
        if quantity > self.quantity:
            raise ValueError(f"Insufficient stock for {self.name}: {self.quantity} < {quantity}")
        shipment = Shipment(quantity=quantity, destination=destination)
        self._shipments.append(shipment)
        self.shipments_count = _increment(self.shipments_count)
        self.quantity -= quantity
        self.record_log(LogOperation.SHIP, delta=-quantity, note=f"Shipped to {destination}")
        return shipment

    def add_receipt(self, *, quantity: int, source: str) -> Receipt:
        if quantity <= 0:
            raise ValueError("Receipt quantity must be positive")
        receipt = Receipt(quantity=quantity, source=source)
        self._receipts.append(receipt)
        self.receipts_count = _increment(self.receipts_count)
        self.quantity += quantity
        self.record_log(LogOperation.RECEIVE, delta=quantity, note=f"Received from {source}")
        return receipt

    def touch(self, *, at: datetime | None = None) -> None:
        self.updated_at = at or _utcnow()
