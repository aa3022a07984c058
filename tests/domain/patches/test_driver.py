from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from stockrx.domain.patches import (
    BatchExecutionDriver,
    BatchResult,
    DataPatch,
    ExecutionTimeoutError,
    RecordOutcome,
    StalledBatchError,
)
from tests.support.fakes import FakeUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class _Settings:
    batch_size: int = 2
    memory_limit_mb: int = 500
    timeout_seconds: float = 0
    dry_run: bool = False


class _ListPatch(DataPatch):
    """Walks ``options["records"]``; ids in ``options["broken"]`` fail."""

    def _parse_options(self, options: Mapping[str, object]) -> None:
        self.records: list[int] = list(options.get("records", []))  # type: ignore[arg-type]
        self.broken: set[int] = set(options.get("broken", ()))  # type: ignore[arg-type]
        self.calls: list[tuple[int, int]] = []

    def estimate_target_count(self) -> int:
        return len(self.records)

    def execute_batch(self, batch_size: int, offset: int) -> BatchResult:
        self.calls.append((batch_size, offset))
        page = self.records[offset : offset + batch_size]
        outcomes = tuple(
            RecordOutcome(record_id=record, success=False, error="boom")
            if record in self.broken
            else RecordOutcome(
                record_id=record, success=True, before=Decimal(record), after=Decimal(record * 2)
            )
            for record in page
        )
        return BatchResult(
            count=len(page),
            finished=offset + len(page) >= len(self.records),
            records=outcomes,
        )


class _StallingPatch(_ListPatch):
    def execute_batch(self, batch_size: int, offset: int) -> BatchResult:
        self.calls.append((batch_size, offset))
        return BatchResult(count=0, finished=False)


class _FakeClock:
    def __init__(self, step: float) -> None:
        self.value = 0.0
        self.step = step

    def __call__(self) -> float:
        self.value += self.step
        return self.value


def _patch(cls: type[_ListPatch], **options: object) -> _ListPatch:
    return cls(FakeUnitOfWork(), options)


def test_driver_walks_every_offset_once() -> None:
    patch = _patch(_ListPatch, records=[1, 2, 3, 4, 5])
    completed: list[BatchResult] = []

    stats = BatchExecutionDriver(_Settings(), on_batch_complete=completed.append).run(patch)

    assert patch.calls == [(2, 0), (2, 2), (2, 4)]
    assert stats.total_seen == 5
    assert stats.succeeded == 5
    assert stats.batch_count == 3
    assert len(completed) == 3
    assert stats.total_before == Decimal(15)
    assert stats.total_after == Decimal(30)
    assert stats.delta == Decimal(15)


def test_record_failures_are_collected_and_do_not_stop_the_run() -> None:
    patch = _patch(_ListPatch, records=[1, 2, 3, 4], broken=[2, 3])

    stats = BatchExecutionDriver(_Settings(batch_size=3)).run(patch)

    assert stats.total_seen == 4
    assert stats.succeeded == 2
    assert stats.failed == 2
    assert [failure.record_id for failure in stats.failures] == [2, 3]
    assert stats.total_before == Decimal(5)


def test_empty_target_set_finishes_after_one_call() -> None:
    patch = _patch(_ListPatch, records=[])

    stats = BatchExecutionDriver(_Settings()).run(patch)

    assert patch.calls == [(2, 0)]
    assert stats.total_seen == 0
    assert stats.batch_count == 1


def test_zero_progress_is_a_stall() -> None:
    patch = _patch(_StallingPatch, records=[1])

    with pytest.raises(StalledBatchError, match="no progress at offset 0") as excinfo:
        BatchExecutionDriver(_Settings()).run(patch)

    assert excinfo.value.statistics is not None
    assert excinfo.value.statistics.batch_count == 1


def test_timeout_aborts_with_partial_statistics() -> None:
    patch = _patch(_ListPatch, records=list(range(1, 11)))
    driver = BatchExecutionDriver(_Settings(timeout_seconds=2.5), clock=_FakeClock(step=1.0))

    with pytest.raises(ExecutionTimeoutError) as excinfo:
        driver.run(patch)

    statistics = excinfo.value.statistics
    assert statistics is not None
    assert 0 < statistics.total_seen < 10
    assert statistics.elapsed_seconds > 2.5


def test_zero_timeout_never_aborts() -> None:
    patch = _patch(_ListPatch, records=list(range(1, 11)))
    driver = BatchExecutionDriver(_Settings(timeout_seconds=0), clock=_FakeClock(step=3600.0))

    stats = driver.run(patch)

    assert stats.total_seen == 10
    assert stats.elapsed_seconds > 3600


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="batch_size must be positive"):
        BatchExecutionDriver(_Settings(batch_size=0))
