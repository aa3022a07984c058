"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from stockrx.domain.model import Batch, BatchStatus, Inventory

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from stockrx.domain.counters.contracts import CountedEntity
    from stockrx.domain.queries import ExpiryCriteria, InventoryCriteria


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class InventoryRepository(Repository[Inventory], Protocol):
    """Persistence contract for inventories."""

    def get(self, inventory_id: int) -> Inventory | None: ...

    def count_matching(self, criteria: InventoryCriteria) -> int: ...

    def matching_ids(self, criteria: InventoryCriteria) -> list[int]:
        """Return ids of matching inventories in ascending order."""
        ...

    def get_many(self, inventory_ids: Sequence[int]) -> list[Inventory]:
        """Load inventories by id, ordered by id."""
        ...


@runtime_checkable
class BatchRepository(Repository[Batch], Protocol):
    """Persistence contract for lot batches."""

    def count_matching(self, criteria: ExpiryCriteria) -> int: ...

    def page(self, criteria: ExpiryCriteria, *, limit: int, offset: int) -> list[Batch]:
        """Return one page of matching batches ordered by id."""
        ...

    def count_active(self, inventory_id: int) -> int: ...

    def has_status(self, inventory_id: int, status: BatchStatus) -> bool: ...


@runtime_checkable
class CounterRepository(Protocol):
    """Read and resynchronise denormalised counter columns."""

    def counter_names(self, kind: CountedEntity) -> tuple[str, ...]: ...

    def exists(self, kind: CountedEntity, entity_id: int) -> bool: ...

    def entity_ids(self, kind: CountedEntity) -> list[int]: ...

    def cached_values(self, kind: CountedEntity, entity_id: int) -> Mapping[str, int | None]:
        """Stored counter values; absent columns are omitted."""
        ...

    def actual_counts(self, kind: CountedEntity, entity_id: int) -> Mapping[str, int]: ...

    def reset(self, kind: CountedEntity, entity_id: int, counter: str) -> int:
        """Overwrite ``counter`` with a live count and return the new value."""
        ...
