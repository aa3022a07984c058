"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, inspect, select, update

from stockrx.adapters.sqlalchemy.mappings import (
    COUNTER_DEFINITIONS,
    batch_table,
    inventory_table,
)
from stockrx.domain.counters import CounterError, UnknownCounterError
from stockrx.domain.model import Batch, BatchStatus, Inventory

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import Select
    from sqlalchemy.orm import Session
    from sqlalchemy.sql.elements import ColumnElement

    from stockrx.adapters.sqlalchemy.mappings import CountedTable, CounterDefinition
    from stockrx.domain.counters import CountedEntity
    from stockrx.domain.queries import ExpiryCriteria, InventoryCriteria

_INACTIVE_BATCH_STATUSES = (BatchStatus.EXPIRED, BatchStatus.CONSUMED)


class SqlAlchemyInventoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Inventory) -> None:
        self.session.add(entity)

    def get(self, inventory_id: int) -> Inventory | None:
        return self.session.get(Inventory, inventory_id)

    def count_matching(self, criteria: InventoryCriteria) -> int:
        stmt = select(func.count()).select_from(inventory_table)
        return self.session.execute(_filter_inventories(stmt, criteria)).scalar_one()

    def matching_ids(self, criteria: InventoryCriteria) -> list[int]:
        stmt = select(inventory_table.c.id).order_by(inventory_table.c.id)
        return list(self.session.execute(_filter_inventories(stmt, criteria)).scalars())

    def get_many(self, inventory_ids: Sequence[int]) -> list[Inventory]:
        if not inventory_ids:
            return []
        stmt = (
            select(Inventory)
            .where(inventory_table.c.id.in_(inventory_ids))
            .order_by(inventory_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


def _filter_inventories[T: tuple[object, ...]](
    stmt: Select[T], criteria: InventoryCriteria
) -> Select[T]:
    if criteria.min_price is not None:
        stmt = stmt.where(inventory_table.c.price >= criteria.min_price)
    if criteria.max_price is not None:
        stmt = stmt.where(inventory_table.c.price <= criteria.max_price)
    if criteria.updated_before is not None:
        stmt = stmt.where(inventory_table.c.updated_at <= criteria.updated_before)
    if criteria.category is not None:
        stmt = stmt.where(inventory_table.c.category == criteria.category)
    return stmt


class SqlAlchemyBatchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Batch) -> None:
        self.session.add(entity)

    def count_matching(self, criteria: ExpiryCriteria) -> int:
        stmt = select(func.count()).select_from(batch_table).where(_expiry_window(criteria))
        return self.session.execute(stmt).scalar_one()

    def page(self, criteria: ExpiryCriteria, *, limit: int, offset: int) -> list[Batch]:
        stmt = (
            select(Batch)
            .where(_expiry_window(criteria))
            .order_by(batch_table.c.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.execute(stmt).scalars())

    def count_active(self, inventory_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(batch_table)
            .where(batch_table.c.inventory_id == inventory_id)
            .where(batch_table.c.status.not_in(_INACTIVE_BATCH_STATUSES))
        )
        return self.session.execute(stmt).scalar_one()

    def has_status(self, inventory_id: int, status: BatchStatus) -> bool:
        stmt = (
            select(batch_table.c.id)
            .where(batch_table.c.inventory_id == inventory_id)
            .where(batch_table.c.status == status)
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None


def _expiry_window(criteria: ExpiryCriteria) -> ColumnElement[bool]:
    upper = criteria.warning_until or criteria.cutoff
    return batch_table.c.expires_on.is_not(None) & (batch_table.c.expires_on <= upper)


class SqlAlchemyCounterRepository:
    """Counter caches declared in ``COUNTER_DEFINITIONS``.

    Counter columns missing from the live schema are left out of
    :meth:`cached_values`, so callers read them as 0.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._live_columns: dict[str, frozenset[str]] = {}

    def counter_names(self, kind: CountedEntity) -> tuple[str, ...]:
        return tuple(counter.name for counter in _counted(kind).counters)

    def exists(self, kind: CountedEntity, entity_id: int) -> bool:
        table = _counted(kind).table
        stmt = select(table.c.id).where(table.c.id == entity_id)
        return self.session.execute(stmt).first() is not None

    def entity_ids(self, kind: CountedEntity) -> list[int]:
        table = _counted(kind).table
        return list(self.session.execute(select(table.c.id).order_by(table.c.id)).scalars())

    def cached_values(self, kind: CountedEntity, entity_id: int) -> Mapping[str, int | None]:
        counted = _counted(kind)
        live = self._columns_of(counted)
        columns = [counted.table.c[name] for name in self.counter_names(kind) if name in live]
        if not columns:
            return {}
        stmt = select(*columns).where(counted.table.c.id == entity_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        return dict(row) if row is not None else {}

    def actual_counts(self, kind: CountedEntity, entity_id: int) -> Mapping[str, int]:
        counted = _counted(kind)
        stmt = select(
            *(
                _live_count(counter, entity_id).label(counter.name)
                for counter in counted.counters
            )
        )
        row = self.session.execute(stmt).mappings().one()
        return {name: int(value) for name, value in row.items()}

    def reset(self, kind: CountedEntity, entity_id: int, counter: str) -> int:
        counted = _counted(kind)
        definition = counted.definition(counter)
        if definition is None:
            raise UnknownCounterError(f"{kind} has no counter named {counter}")
        if counter not in self._columns_of(counted):
            raise CounterError(f"Column {counted.table.name}.{counter} does not exist")

        stmt = (
            update(counted.mapped_class)
            .where(counted.table.c.id == entity_id)
            .values({counter: _live_count(definition, counted.table.c.id)})
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(stmt)
        refreshed = select(counted.table.c[counter]).where(counted.table.c.id == entity_id)
        return self.session.execute(refreshed).scalar_one()

    def _columns_of(self, counted: CountedTable) -> frozenset[str]:
        name = counted.table.name
        if name not in self._live_columns:
            inspector = inspect(self.session.connection())
            self._live_columns[name] = frozenset(
                column["name"] for column in inspector.get_columns(name)
            )
        return self._live_columns[name]


def _counted(kind: CountedEntity) -> CountedTable:
    try:
        return COUNTER_DEFINITIONS[kind]
    except KeyError:
        raise UnknownCounterError(f"No counters are declared for {kind}") from None


def _live_count(
    definition: CounterDefinition, parent_id: int | ColumnElement[int]
) -> ColumnElement[int]:
    stmt = (
        select(func.count())
        .select_from(definition.child)
        .where(definition.foreign_key == parent_id)
    )
    if definition.condition is not None:
        stmt = stmt.where(definition.condition)
    return stmt.scalar_subquery()
