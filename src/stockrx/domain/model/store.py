"""Store aggregate and inter-store transfers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stockrx.domain.model.enums import TransferStatus

if TYPE_CHECKING:
    from stockrx.domain.model.inventory import Inventory


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _bump(value: int | None, step: int = 1) -> int:
    return max((value or 0) + step, 0)


@dataclass(eq=False, kw_only=True)
class StoreInventory:
    quantity: int = 0
    safety_stock_level: int = 5
    id: int | None = None
    store_id: int | None = field(default=None, init=False)
    inventory_id: int | None = field(default=None, init=False)
    _inventory: Inventory | None = field(default=None, repr=False)

    @property
    def inventory(self) -> Inventory | None:
        return self._inventory

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.safety_stock_level


@dataclass(eq=False, kw_only=True)
class Store:
    code: str
    name: str
    id: int | None = None

    # counter caches
    store_inventories_count: int | None = 0
    pending_outgoing_transfers_count: int | None = 0
    pending_incoming_transfers_count: int | None = 0
    low_stock_items_count: int | None = 0

    _stock_items: list[StoreInventory] = field(
        default_factory=list["StoreInventory"], repr=False
    )

    @property
    def stock_items(self) -> tuple[StoreInventory, ...]:
        return tuple(self._stock_items)

    @property
    def display_name(self) -> str:
        return f"{self.code} - {self.name}"

    def stock(
        self,
        inventory: Inventory,
        *,
        quantity: int = 0,
        safety_stock_level: int = 5,
    ) -> StoreInventory:
        item = StoreInventory(
            quantity=quantity,
            safety_stock_level=safety_stock_level,
            _inventory=inventory,
        )
        self._stock_items.append(item)
        self.store_inventories_count = _bump(self.store_inventories_count)
        if item.is_low_stock:
            self.low_stock_items_count = _bump(self.low_stock_items_count)
        return item


@dataclass(eq=False, kw_only=True)
class InterStoreTransfer:
    quantity: int
    status: TransferStatus = TransferStatus.PENDING
    requested_at: datetime = field(default_factory=_utcnow)
    id: int | None = None
    source_store_id: int | None = field(default=None, init=False)
    destination_store_id: int | None = field(default=None, init=False)
    inventory_id: int | None = field(default=None, init=False)
    _source: Store | None = field(default=None, repr=False)
    _destination: Store | None = field(default=None, repr=False)
    _inventory: Inventory | None = field(default=None, repr=False)

    @classmethod
    def request(
        cls,
        *,
        source: Store,
        destination: Store,
        inventory: Inventory,
        quantity: int,
    ) -> InterStoreTransfer:
        if source is destination:
            raise ValueError("Source and destination stores must differ")
        if quantity <= 0:
            raise ValueError("Transfer quantity must be positive")
        transfer = cls(
            quantity=quantity,
            _source=source,
            _destination=destination,
            _inventory=inventory,
        )
        source.pending_outgoing_transfers_count = _bump(source.pending_outgoing_transfers_count)
        destination.pending_incoming_transfers_count = _bump(
            destination.pending_incoming_transfers_count
        )
        return transfer

    def settle(self, status: TransferStatus) -> None:
        """Move a pending transfer to a terminal or in-flight state."""

        if self.status is not TransferStatus.PENDING:
            raise ValueError(f"Transfer is not pending: {self.status}")
        if status is TransferStatus.PENDING:
            raise ValueError("Transfer is already pending")
        self.status = status
        if self._source is not None:
            self._source.pending_outgoing_transfers_count = _bump(
                self._source.pending_outgoing_transfers_count, -1
            )
        if self._destination is not None:
            self._destination.pending_incoming_transfers_count = _bump(
                self._destination.pending_incoming_transfers_count, -1
            )
