"""Bulk inventory price adjustment."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING

from stockrx.domain.model import LogOperation
from stockrx.domain.queries import InventoryCriteria

from .contract import (
    BatchResult,
    DataPatch,
    RecordOutcome,
    check_batch_window,
    date_option,
    decimal_option,
    str_option,
)
from .errors import PatchOptionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stockrx.domain.model import Inventory

log = logging.getLogger(__name__)

PERCENTAGE_MIN = Decimal(-100)
PERCENTAGE_MAX = Decimal(1000)

_WHOLE = Decimal(1)
_CENTS = Decimal("0.01")


class AdjustmentType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    MULTIPLY = "multiply"
    SET_VALUE = "set_value"


def adjusted_price(price: Decimal, adjustment_type: AdjustmentType, value: Decimal) -> Decimal:
    """Return the new price; relative adjustments round half up to whole units."""

    match adjustment_type:
        case AdjustmentType.PERCENTAGE:
            return (price * (1 + value / 100)).quantize(_WHOLE, rounding=ROUND_HALF_UP)
        case AdjustmentType.FIXED_AMOUNT:
            return max(price + value, Decimal(0)).quantize(_CENTS, rounding=ROUND_HALF_UP)
        case AdjustmentType.MULTIPLY:
            return (price * value).quantize(_WHOLE, rounding=ROUND_HALF_UP)
        case AdjustmentType.SET_VALUE:
            return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


class InventoryPriceAdjustment(DataPatch):
    """Adjust inventory prices by percentage, fixed amount, factor or absolute value.

    Options: ``adjustment_type``, ``adjustment_value`` and the filters
    ``min_price``, ``max_price``, ``before_date`` and ``category``. The ids of
    the matching inventories are pinned on first use so that a price moving
    out of the ``min_price``/``max_price`` window cannot shift later offsets.
    """

    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    criteria: InventoryCriteria

    def _parse_options(self, options: Mapping[str, object]) -> None:
        raw_type = options.get("adjustment_type") or AdjustmentType.PERCENTAGE
        try:
            self.adjustment_type = AdjustmentType(str(raw_type).strip().lower())
        except ValueError:
            allowed = ", ".join(item.value for item in AdjustmentType)
            raise PatchOptionError(
                "adjustment_type", f"must be one of {allowed}", raw_type
            ) from None

        self.adjustment_value = decimal_option(options, "adjustment_value", None) or Decimal(0)
        self._validate_value()

        min_price = decimal_option(options, "min_price", None)
        max_price = decimal_option(options, "max_price", None)
        if min_price is not None and min_price < 0:
            raise PatchOptionError("min_price", "must not be negative", min_price)
        if min_price is not None and max_price is not None and min_price > max_price:
            raise PatchOptionError("max_price", f"must be >= min_price ({min_price})", max_price)

        before_date = date_option(options, "before_date", None)
        updated_before = (
            datetime.combine(before_date, time.max, tzinfo=UTC) if before_date is not None else None
        )

        self.criteria = InventoryCriteria(
            min_price=min_price,
            max_price=max_price,
            updated_before=updated_before,
            category=str_option(options, "category"),
        )
        self._target_ids: list[int] | None = None
        self._processed = 0
        self._total_before = Decimal(0)
        self._total_after = Decimal(0)

    def _validate_value(self) -> None:
        value = self.adjustment_value
        match self.adjustment_type:
            case AdjustmentType.PERCENTAGE if not PERCENTAGE_MIN <= value <= PERCENTAGE_MAX:
                raise PatchOptionError(
                    "adjustment_value",
                    f"must be between {PERCENTAGE_MIN} and {PERCENTAGE_MAX} for percentage type",
                    value,
                )
            case AdjustmentType.MULTIPLY if value <= 0:
                raise PatchOptionError(
                    "adjustment_value", "must be greater than 0 for multiply type", value
                )
            case AdjustmentType.SET_VALUE if value < 0:
                raise PatchOptionError(
                    "adjustment_value", "must be 0 or greater for set_value type", value
                )
            case _:
                pass

    def estimate_target_count(self) -> int:
        if self._target_ids is not None:
            return len(self._target_ids)
        return self.repositories.inventories.count_matching(self.criteria)

    def _targets(self) -> list[int]:
        if self._target_ids is None:
            self._target_ids = self.repositories.inventories.matching_ids(self.criteria)
        return self._target_ids

    def execute_batch(self, batch_size: int, offset: int) -> BatchResult:
        check_batch_window(batch_size, offset)
        targets = self._targets()
        total = len(targets)
        if offset >= total:
            return BatchResult(count=0, finished=True)

        page_ids = targets[offset : offset + batch_size]
        loaded = {
            inventory.id: inventory
            for inventory in self.repositories.inventories.get_many(page_ids)
        }
        log.info("Price adjustment batch: offset=%s size=%s", offset, len(page_ids))

        records: list[RecordOutcome] = []
        for inventory_id in page_ids:
            inventory = loaded.get(inventory_id)
            if inventory is None:
                records.append(
                    RecordOutcome(
                        record_id=inventory_id, success=False, error="inventory no longer exists"
                    )
                )
                continue
            outcome = self._process(inventory_id, partial(self._adjust, inventory))
            if outcome.success and outcome.before is not None and outcome.after is not None:
                self._processed += 1
                self._total_before += outcome.before
                self._total_after += outcome.after
            records.append(outcome)

        count = len(page_ids)
        return BatchResult(count=count, finished=offset + count >= total, records=tuple(records))

    def _adjust(self, inventory: Inventory) -> RecordOutcome:
        old_price = inventory.price
        new_price = adjusted_price(old_price, self.adjustment_type, self.adjustment_value)

        if self.dry_run:
            log.info("DRY RUN: %s %s -> %s", inventory.name, old_price, new_price)
        else:
            inventory.price = new_price
            inventory.touch()
            inventory.record_log(
                LogOperation.ADJUST,
                note=(
                    f"Price adjusted: {old_price} -> {new_price} "
                    f"({self.adjustment_type}:{self.adjustment_value})"
                ),
            )
            log.debug("Price updated: %s %s -> %s", inventory.name, old_price, new_price)

        return RecordOutcome(
            record_id=inventory.id, success=True, before=old_price, after=new_price
        )

    def summary(self) -> str | None:
        if self._processed == 0:
            return None
        delta = self._total_after - self._total_before
        sign = "+" if delta >= 0 else ""
        title = "Price adjustment (dry run)" if self.dry_run else "Price adjustment"
        lines = [
            f"=== {title} ===",
            f"Inventories: {self._processed}",
            f"Total before: {self._total_before:,}",
            f"Total after: {self._total_after:,}",
            f"Delta: {sign}{delta:,}",
            f"Adjustment: {self.adjustment_type} {self.adjustment_value}",
        ]
        return "\n".join(lines)
