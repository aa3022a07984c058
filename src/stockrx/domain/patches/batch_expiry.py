"""Mark expired and soon-to-expire lot batches."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from functools import partial
from typing import TYPE_CHECKING

from stockrx.domain.model import BatchStatus, InventoryStatus, LogOperation
from stockrx.domain.queries import ExpiryCriteria

from .contract import (
    BatchResult,
    DataPatch,
    RecordOutcome,
    bool_option,
    check_batch_window,
    date_option,
    int_option,
)
from .errors import PatchOptionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stockrx.domain.model import Batch, Inventory

log = logging.getLogger(__name__)

DEFAULT_WARNING_DAYS = 30
UNCHANGED = "unchanged"


class BatchExpiryUpdate(DataPatch):
    """Set batch status to expired or expiring_soon and follow up on the owning inventory.

    The target query does not filter on batch status, so updating a batch never
    moves later records across offsets. Batches already carrying their target
    status are reported as unchanged.
    """

    criteria: ExpiryCriteria
    update_inventory_status: bool

    def _parse_options(self, options: Mapping[str, object]) -> None:
        expiry_date = date_option(options, "expiry_date", None) or date.today()
        grace_period = int_option(options, "grace_period", 0)
        if grace_period < 0:
            raise PatchOptionError("grace_period", "must be 0 or greater", grace_period)
        warning_days = int_option(options, "warning_days", DEFAULT_WARNING_DAYS)
        if warning_days <= 0:
            raise PatchOptionError("warning_days", "must be greater than 0", warning_days)
        include_expiring_soon = bool_option(options, "include_expiring_soon", False)

        self.update_inventory_status = bool_option(options, "update_inventory_status", True)
        self.criteria = ExpiryCriteria(
            cutoff=expiry_date - timedelta(days=grace_period),
            warning_days=warning_days if include_expiring_soon else None,
        )
        self._updated = 0
        self._unchanged = 0

    def estimate_target_count(self) -> int:
        return self.repositories.batches.count_matching(self.criteria)

    def execute_batch(self, batch_size: int, offset: int) -> BatchResult:
        check_batch_window(batch_size, offset)
        total = self.repositories.batches.count_matching(self.criteria)
        if offset >= total:
            return BatchResult(count=0, finished=True)

        page = self.repositories.batches.page(self.criteria, limit=batch_size, offset=offset)
        log.info("Batch expiry page: offset=%s size=%s", offset, len(page))
        records = tuple(self._process(batch.id, partial(self._update, batch)) for batch in page)
        for record in records:
            if not record.success:
                continue
            if record.note == UNCHANGED:
                self._unchanged += 1
            else:
                self._updated += 1

        count = len(page)
        # rows deleted since the count was taken end the run instead of stalling it
        finished = not page or offset + count >= total
        return BatchResult(count=count, finished=finished, records=records)

    def _target_status(self, batch: Batch) -> BatchStatus:
        if batch.expires_on is not None and batch.expires_on <= self.criteria.cutoff:
            return BatchStatus.EXPIRED
        return BatchStatus.EXPIRING_SOON

    def _update(self, batch: Batch) -> RecordOutcome:
        previous = batch.status
        target = self._target_status(batch)
        if previous == target:
            return RecordOutcome(record_id=batch.id, success=True, note=UNCHANGED)

        transition = f"{previous} -> {target}"
        if self.dry_run:
            log.info("DRY RUN: batch %s %s", batch.lot_code, transition)
            return RecordOutcome(record_id=batch.id, success=True, note=transition)

        batch.status = target
        if batch.inventory_id is not None:
            inventory = self.repositories.inventories.get(batch.inventory_id)
            if inventory is not None:
                if self.update_inventory_status:
                    self._refresh_inventory_status(inventory, target)
                inventory.touch()
                inventory.record_log(
                    LogOperation.BATCH_EXPIRY_UPDATE,
                    note=f"Batch {batch.lot_code}: {transition}",
                )
        return RecordOutcome(record_id=batch.id, success=True, note=transition)

    def _refresh_inventory_status(self, inventory: Inventory, target: BatchStatus) -> None:
        batches = self.repositories.batches
        inventory_id = inventory.id
        if batches.count_active(inventory_id) == 0:
            inventory.status = InventoryStatus.OUT_OF_STOCK
        elif target == BatchStatus.EXPIRING_SOON or batches.has_status(
            inventory_id, BatchStatus.EXPIRING_SOON
        ):
            inventory.status = InventoryStatus.EXPIRING_SOON

    def summary(self) -> str | None:
        if self._updated == 0 and self._unchanged == 0:
            return None
        verb = "would update" if self.dry_run else "updated"
        return (
            f"Batch expiry (cutoff {self.criteria.cutoff.isoformat()}): "
            f"{verb} {self._updated}, unchanged {self._unchanged}"
        )
