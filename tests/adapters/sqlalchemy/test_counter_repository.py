from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update

from stockrx.adapters.sqlalchemy.mappings import inventory_table, store_table
from stockrx.domain.counters import CountedEntity, CounterReconciler
from stockrx.domain.model import InterStoreTransfer, TransferStatus
from tests.helpers.inventory import make_inventory, make_store

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session

    from stockrx.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork


def _seed_inventory(session: Session) -> int:
    inventory = make_inventory(quantity=20)
    inventory.add_batch(lot_code="L-1", quantity=10)
    inventory.add_batch(lot_code="L-2", quantity=10)
    inventory.add_shipment(quantity=5, destination="Store B")
    session.add(inventory)
    session.commit()
    assert inventory.id is not None
    return inventory.id


def test_counters_maintained_by_the_aggregate_are_consistent(
    sqlite_session: Session,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    inventory_id = _seed_inventory(sqlite_session)

    with sqlite_unit_of_work() as uow:
        readings = CounterReconciler(uow).counter_stats(CountedEntity.INVENTORY, inventory_id)

    assert {reading.counter: reading.actual for reading in readings} == {
        "batches_count": 2,
        "inventory_logs_count": 1,
        "shipments_count": 1,
        "receipts_count": 0,
    }
    assert all(reading.consistent for reading in readings)


def test_drift_is_detected_and_repaired(
    sqlite_session: Session,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    inventory_id = _seed_inventory(sqlite_session)
    sqlite_session.execute(
        update(inventory_table)
        .where(inventory_table.c.id == inventory_id)
        .values(batches_count=7, receipts_count=None)
    )
    sqlite_session.commit()

    with sqlite_unit_of_work() as uow:
        reconciler = CounterReconciler(uow)
        [discrepancy] = reconciler.check_integrity(CountedEntity.INVENTORY, inventory_id)
        assert (discrepancy.counter, discrepancy.cached, discrepancy.actual) == (
            "batches_count",
            7,
            2,
        )
        repaired = reconciler.fix_integrity(CountedEntity.INVENTORY, inventory_id)
        uow.commit()

    assert [item.counter for item in repaired] == ["batches_count"]
    with sqlite_unit_of_work() as uow:
        assert CounterReconciler(uow).check_integrity(CountedEntity.INVENTORY, inventory_id) == []


def test_store_counters_follow_conditions(
    sqlite_session: Session,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    central = make_store("S001", "Central")
    north = make_store("S002", "North")
    item = make_inventory("Bandage")
    central.stock(item, quantity=1, safety_stock_level=5)
    central.stock(make_inventory("Gauze"), quantity=50, safety_stock_level=5)
    pending = InterStoreTransfer.request(
        source=central, destination=north, inventory=item, quantity=1
    )
    done = InterStoreTransfer.request(source=north, destination=central, inventory=item, quantity=2)
    done.settle(TransferStatus.COMPLETED)
    sqlite_session.add_all([central, north, pending, done])
    sqlite_session.commit()
    sqlite_session.execute(
        update(store_table).where(store_table.c.id == central.id).values(low_stock_items_count=0)
    )
    sqlite_session.commit()

    with sqlite_unit_of_work() as uow:
        report = CounterReconciler(uow).bulk_scan(CountedEntity.STORE, repair=True)
        uow.commit()

    assert report.entities_scanned == 2
    assert report.discrepancies_found == 1
    [offender] = report.worst_offenders
    assert offender.entity.entity_id == central.id
    assert offender.discrepancies[0].counter == "low_stock_items_count"
    assert offender.discrepancies[0].actual == 1

    with sqlite_unit_of_work() as uow:
        rescan = CounterReconciler(uow).bulk_scan(CountedEntity.STORE)
    assert rescan.clean
