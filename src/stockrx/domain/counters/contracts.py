"""Value types produced by counter reconciliation.

All of these are ephemeral: a scan builds them from the live store and the
caller discards them once reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class CountedEntity(StrEnum):
    """Parent tables that carry counter caches."""

    INVENTORY = "inventory"
    STORE = "store"


class CounterError(RuntimeError):
    """Base error for counter reconciliation."""


class EntityNotFoundError(CounterError):
    def __init__(self, ref: EntityRef) -> None:
        super().__init__(f"{ref.kind} {ref.entity_id} does not exist")
        self.ref = ref


class UnknownCounterError(CounterError):
    """Raised when a counter name is not declared for an entity kind."""


@dataclass(frozen=True, slots=True, order=True)
class EntityRef:
    kind: CountedEntity
    entity_id: int

    def __str__(self) -> str:
        return f"{self.kind}#{self.entity_id}"


@dataclass(frozen=True, slots=True)
class CounterReading:
    counter: str
    cached: int
    actual: int

    @property
    def consistent(self) -> bool:
        return self.cached == self.actual

    @property
    def difference(self) -> int:
        return self.cached - self.actual


@dataclass(frozen=True, slots=True)
class Discrepancy:
    entity: EntityRef
    counter: str
    cached: int
    actual: int

    @property
    def difference(self) -> int:
        return self.cached - self.actual


@dataclass(frozen=True, slots=True)
class EntityReport:
    entity: EntityRef
    discrepancies: tuple[Discrepancy, ...]

    @property
    def issue_count(self) -> int:
        return len(self.discrepancies)


@dataclass(frozen=True, slots=True)
class EntityFailure:
    entity: EntityRef
    error: str


@dataclass(slots=True)
class AggregateReport:
    """Outcome of a scan over every entity of one kind."""

    kind: CountedEntity
    entities_scanned: int = 0
    discrepancies_found: int = 0
    inconsistent_entities: int = 0
    worst_offenders: tuple[EntityReport, ...] = ()
    repaired: list[EntityReport] = field(default_factory=list["EntityReport"])
    failures: list[EntityFailure] = field(default_factory=list["EntityFailure"])

    @property
    def consistency_rate(self) -> float:
        """Percentage of scanned entities without discrepancies."""

        if self.entities_scanned == 0:
            return 100.0
        consistent = self.entities_scanned - self.inconsistent_entities
        return round(consistent / self.entities_scanned * 100, 2)

    @property
    def clean(self) -> bool:
        return self.discrepancies_found == 0 and not self.failures
