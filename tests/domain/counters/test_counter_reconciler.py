from __future__ import annotations

import pytest

from stockrx.domain.counters import (
    CountedEntity,
    CounterReconciler,
    EntityNotFoundError,
    EntityRef,
)
from tests.support.fakes import FakeCounterRepository, FakeUnitOfWork

INVENTORY = CountedEntity.INVENTORY


def _reconciler(counters: FakeCounterRepository) -> tuple[CounterReconciler, FakeUnitOfWork]:
    uow = FakeUnitOfWork(counters=counters)
    return CounterReconciler(uow), uow


def test_check_integrity_is_empty_when_consistent() -> None:
    counters = FakeCounterRepository()
    counters.set_entity(
        INVENTORY, 1, cached={"batches_count": 2, "shipments_count": 0}, actual={"batches_count": 2}
    )
    reconciler, _ = _reconciler(counters)

    assert reconciler.check_integrity(INVENTORY, 1) == []


def test_check_integrity_reports_cached_and_actual() -> None:
    counters = FakeCounterRepository()
    counters.set_entity(
        INVENTORY,
        7,
        cached={"batches_count": 5, "shipments_count": 1},
        actual={"batches_count": 3, "shipments_count": 1},
    )
    reconciler, _ = _reconciler(counters)

    [discrepancy] = reconciler.check_integrity(INVENTORY, 7)

    assert discrepancy.entity == EntityRef(INVENTORY, 7)
    assert discrepancy.counter == "batches_count"
    assert (discrepancy.cached, discrepancy.actual) == (5, 3)
    assert discrepancy.difference == 2
    assert counters.resets == []


def test_missing_or_null_counters_read_as_zero() -> None:
    counters = FakeCounterRepository()
    counters.set_entity(
        INVENTORY,
        1,
        cached={"batches_count": None},
        actual={"batches_count": 0, "shipments_count": 0},
    )
    reconciler, _ = _reconciler(counters)

    readings = reconciler.counter_stats(INVENTORY, 1)

    assert [(reading.counter, reading.cached) for reading in readings] == [
        ("batches_count", 0),
        ("shipments_count", 0),
    ]
    assert all(reading.consistent for reading in readings)


def test_unknown_entity_raises() -> None:
    reconciler, _ = _reconciler(FakeCounterRepository())

    with pytest.raises(EntityNotFoundError, match="inventory 99 does not exist"):
        reconciler.check_integrity(INVENTORY, 99)


def test_fix_integrity_resets_only_inconsistent_counters() -> None:
    counters = FakeCounterRepository()
    counters.set_entity(
        INVENTORY,
        1,
        cached={"batches_count": 9, "shipments_count": 2},
        actual={"batches_count": 4, "shipments_count": 2},
    )
    reconciler, _ = _reconciler(counters)

    repaired = reconciler.fix_integrity(INVENTORY, 1)

    assert [item.counter for item in repaired] == ["batches_count"]
    assert counters.resets == [(INVENTORY, 1, "batches_count")]
    assert reconciler.check_integrity(INVENTORY, 1) == []


def test_bulk_scan_ranks_worst_offenders() -> None:
    counters = FakeCounterRepository()
    consistent = {"batches_count": 1, "shipments_count": 1}
    counters.set_entity(INVENTORY, 1, cached=consistent, actual=consistent)
    counters.set_entity(
        INVENTORY,
        2,
        cached={"batches_count": 3, "shipments_count": 1},
        actual={"batches_count": 1, "shipments_count": 1},
    )
    counters.set_entity(
        INVENTORY,
        3,
        cached={"batches_count": 3, "shipments_count": 3},
        actual={"batches_count": 1, "shipments_count": 1},
    )
    counters.set_entity(
        INVENTORY,
        4,
        cached={"batches_count": 0, "shipments_count": 1},
        actual={"batches_count": 1, "shipments_count": 1},
    )
    reconciler, _ = _reconciler(counters)

    report = reconciler.bulk_scan(INVENTORY)

    assert report.entities_scanned == 4
    assert report.discrepancies_found == 4
    assert report.inconsistent_entities == 3
    assert [item.entity.entity_id for item in report.worst_offenders] == [3, 2, 4]
    assert report.consistency_rate == 25.0
    assert report.repaired == []
    assert not report.clean


def test_bulk_scan_top_limits_offenders() -> None:
    counters = FakeCounterRepository()
    for entity_id in range(1, 8):
        counters.set_entity(
            INVENTORY,
            entity_id,
            cached={"batches_count": 2, "shipments_count": 0},
            actual={"batches_count": 1, "shipments_count": 0},
        )
    reconciler, _ = _reconciler(counters)

    report = reconciler.bulk_scan(INVENTORY, top=2)

    assert [item.entity.entity_id for item in report.worst_offenders] == [1, 2]
    assert report.discrepancies_found == 7


def test_bulk_scan_isolates_failures_and_repairs_the_rest() -> None:
    counters = FakeCounterRepository()
    for entity_id in (1, 2, 3):
        counters.set_entity(
            INVENTORY,
            entity_id,
            cached={"batches_count": 5, "shipments_count": 0},
            actual={"batches_count": 2, "shipments_count": 0},
        )
    counters.failing.add(2)
    reconciler, uow = _reconciler(counters)

    report = reconciler.bulk_scan(INVENTORY, repair=True)

    assert report.entities_scanned == 3
    assert [failure.entity.entity_id for failure in report.failures] == [2]
    assert "constraint violation" in report.failures[0].error
    assert [item.entity.entity_id for item in report.repaired] == [1, 3]
    assert uow.savepoint_rollbacks == 1
    assert counters.cached[INVENTORY, 1]["batches_count"] == 2
    assert counters.cached[INVENTORY, 2]["batches_count"] == 5


def test_bulk_scan_of_empty_collection_is_clean() -> None:
    reconciler, _ = _reconciler(FakeCounterRepository())

    report = reconciler.bulk_scan(CountedEntity.STORE)

    assert report.entities_scanned == 0
    assert report.consistency_rate == 100.0
    assert report.clean
