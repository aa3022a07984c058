"""Selection criteria shared by data patches and the repositories serving them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal


@dataclass(frozen=True, slots=True)
class InventoryCriteria:
    """Inventory filter; ``None`` fields do not constrain the selection."""

    min_price: Decimal | None = None
    max_price: Decimal | None = None
    updated_before: datetime | None = None
    category: str | None = None


@dataclass(frozen=True, slots=True)
class ExpiryCriteria:
    """Batches expired on or before ``cutoff``, optionally with a warning window after it."""

    cutoff: date
    warning_days: int | None = None

    @property
    def warning_until(self) -> date | None:
        if self.warning_days is None:
            return None
        return self.cutoff + timedelta(days=self.warning_days)
