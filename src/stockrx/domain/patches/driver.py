"""Drive a data patch through offset-addressed batches until it is exhausted."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from .contract import check_batch_window
from .errors import ExecutionTimeoutError, StalledBatchError

if TYPE_CHECKING:
    from collections.abc import Callable

    from .contract import BatchResult, DataPatch, RecordOutcome

log = logging.getLogger(__name__)


class ExecutionSettings(Protocol):
    @property
    def batch_size(self) -> int: ...

    @property
    def memory_limit_mb(self) -> int: ...

    @property
    def timeout_seconds(self) -> float: ...

    @property
    def dry_run(self) -> bool: ...


@dataclass(slots=True)
class ExecutionStatistics:
    """Totals accumulated over one run of one patch."""

    total_seen: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[RecordOutcome] = field(default_factory=list["RecordOutcome"])
    batch_count: int = 0
    total_before: Decimal = Decimal(0)
    total_after: Decimal = Decimal(0)
    elapsed_seconds: float = 0.0

    @property
    def delta(self) -> Decimal:
        return self.total_after - self.total_before

    def merge(self, result: BatchResult) -> None:
        self.batch_count += 1
        self.total_seen += result.count
        for record in result.records:
            if not record.success:
                self.failed += 1
                self.failures.append(record)
                continue
            self.succeeded += 1
            if record.before is not None and record.after is not None:
                self.total_before += record.before
                self.total_after += record.after


class BatchExecutionDriver:
    """Single-threaded batch loop with stall detection and a wall-clock budget.

    ``on_batch_complete`` runs after every batch; the executor uses it to
    commit (or, in dry-run, roll back) so that no run-level transaction spans
    the whole patch.
    """

    def __init__(
        self,
        settings: ExecutionSettings,
        *,
        on_batch_complete: Callable[[BatchResult], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        check_batch_window(settings.batch_size, 0)
        self.settings = settings
        self._on_batch_complete = on_batch_complete
        self._clock = clock

    def run(self, patch: DataPatch) -> ExecutionStatistics:
        stats = ExecutionStatistics()
        started = self._clock()
        offset = 0
        batch_size = self.settings.batch_size
        timeout = self.settings.timeout_seconds
        name = type(patch).__name__

        while True:
            stats.elapsed_seconds = self._clock() - started
            if timeout and stats.elapsed_seconds > timeout:
                raise ExecutionTimeoutError(
                    f"{name} exceeded timeout of {timeout}s after {stats.total_seen} records",
                    stats,
                )

            result = patch.execute_batch(batch_size, offset)
            stats.merge(result)
            if self._on_batch_complete is not None:
                self._on_batch_complete(result)

            log.info(
                "%s batch %s: offset=%s count=%s failed=%s finished=%s",
                name,
                stats.batch_count,
                offset,
                result.count,
                len(result.failed),
                result.finished,
            )

            if result.finished:
                break
            if result.count == 0:
                stats.elapsed_seconds = self._clock() - started
                raise StalledBatchError(
                    f"{name} made no progress at offset {offset}", stats
                )
            offset += result.count

        stats.elapsed_seconds = self._clock() - started
        return stats
