"""Builders for inventory and store fixtures."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from stockrx.domain.model import BatchStatus, Inventory, Store

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.orm import Session

    from stockrx.domain.model import Batch


def make_inventory(
    name: str = "Paracetamol 500mg",
    *,
    price: Decimal | int | str = "1000",
    quantity: int = 10,
    category: str | None = None,
    updated_at: datetime | None = None,
) -> Inventory:
    return Inventory(
        name=name,
        price=Decimal(price),
        quantity=quantity,
        category=category,
        updated_at=updated_at or datetime.now(UTC),
    )


def seed_inventories(session: Session, prices: Iterable[Decimal | int | str]) -> list[Inventory]:
    """Persist one inventory per price and return them in id order."""

    inventories = [
        make_inventory(f"Item {index:03d}", price=price) for index, price in enumerate(prices)
    ]
    session.add_all(inventories)
    session.commit()
    return inventories


def add_batch_expiring(
    inventory: Inventory,
    lot_code: str,
    *,
    days_from_today: int | None,
    status: BatchStatus = BatchStatus.ACTIVE,
    today: date | None = None,
) -> Batch:
    base = today or date.today()
    expires_on = None if days_from_today is None else base + timedelta(days=days_from_today)
    return inventory.add_batch(lot_code=lot_code, quantity=5, expires_on=expires_on, status=status)


def make_store(code: str = "S001", name: str = "Central") -> Store:
    return Store(code=code, name=name)
