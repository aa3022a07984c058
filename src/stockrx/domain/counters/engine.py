"""Verify and repair counter caches against live relational counts.

The reconciler is stateless between calls; every operation recomputes from the
store. Repairs overwrite a counter with a fresh ``COUNT`` in one statement, so
a child row created a moment later may make the counter drift again. That
staleness is accepted rather than prevented.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .contracts import (
    AggregateReport,
    CounterReading,
    Discrepancy,
    EntityFailure,
    EntityNotFoundError,
    EntityRef,
    EntityReport,
)

if TYPE_CHECKING:
    from stockrx.domain.counters.contracts import CountedEntity
    from stockrx.domain.ports.persistence import CounterRepository
    from stockrx.domain.ports.unit_of_work import MaintenanceUnitOfWork

log = logging.getLogger(__name__)

DEFAULT_TOP_OFFENDERS = 5


class CounterReconciler:
    """Check, repair and scan the counter caches reachable from one unit of work."""

    def __init__(self, unit_of_work: MaintenanceUnitOfWork) -> None:
        self._uow = unit_of_work

    @property
    def _counters(self) -> CounterRepository:
        return self._uow.repositories.counters

    def counter_stats(self, kind: CountedEntity, entity_id: int) -> tuple[CounterReading, ...]:
        """Return every counter of the entity, consistent or not."""

        ref = EntityRef(kind, entity_id)
        if not self._counters.exists(kind, entity_id):
            raise EntityNotFoundError(ref)
        cached = self._counters.cached_values(kind, entity_id)
        actual = self._counters.actual_counts(kind, entity_id)
        return tuple(
            CounterReading(counter=name, cached=cached.get(name) or 0, actual=actual[name])
            for name in self._counters.counter_names(kind)
        )

    def check_integrity(self, kind: CountedEntity, entity_id: int) -> list[Discrepancy]:
        ref = EntityRef(kind, entity_id)
        return [
            Discrepancy(
                entity=ref,
                counter=reading.counter,
                cached=reading.cached,
                actual=reading.actual,
            )
            for reading in self.counter_stats(kind, entity_id)
            if not reading.consistent
        ]

    def fix_integrity(self, kind: CountedEntity, entity_id: int) -> list[Discrepancy]:
        """Resynchronise inconsistent counters and return what was repaired."""

        discrepancies = self.check_integrity(kind, entity_id)
        for discrepancy in discrepancies:
            value = self._counters.reset(kind, entity_id, discrepancy.counter)
            log.info(
                "Repaired %s.%s: cached=%s actual=%s now=%s",
                discrepancy.entity,
                discrepancy.counter,
                discrepancy.cached,
                discrepancy.actual,
                value,
            )
        return discrepancies

    def bulk_scan(
        self,
        kind: CountedEntity,
        *,
        repair: bool = False,
        top: int | None = DEFAULT_TOP_OFFENDERS,
    ) -> AggregateReport:
        """Check (and optionally repair) every entity of ``kind``.

        Each entity runs inside its own savepoint; a failure is logged and
        reported in ``failures`` without aborting the scan. ``worst_offenders``
        ranks entities by mismatched-counter count, then by id.
        """

        report = AggregateReport(kind=kind)
        offenders: list[EntityReport] = []

        for entity_id in self._counters.entity_ids(kind):
            ref = EntityRef(kind, entity_id)
            report.entities_scanned += 1
            try:
                with self._uow.savepoint():
                    if repair:
                        discrepancies = self.fix_integrity(kind, entity_id)
                    else:
                        discrepancies = self.check_integrity(kind, entity_id)
            except Exception as exc:
                log.exception("Counter reconciliation failed for %s", ref)
                report.failures.append(EntityFailure(entity=ref, error=str(exc)))
                continue

            if not discrepancies:
                continue
            entity_report = EntityReport(entity=ref, discrepancies=tuple(discrepancies))
            offenders.append(entity_report)
            report.discrepancies_found += entity_report.issue_count
            report.inconsistent_entities += 1
            if repair:
                report.repaired.append(entity_report)

        offenders.sort(key=lambda item: (-item.issue_count, item.entity.entity_id))
        report.worst_offenders = tuple(offenders if top is None else offenders[:top])

        log.info(
            "Scanned %s %s entities: discrepancies=%s, failures=%s, repair=%s",
            report.entities_scanned,
            kind,
            report.discrepancies_found,
            len(report.failures),
            repair,
        )
        return report
