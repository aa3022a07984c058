"""Run registered data patches end to end."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from stockrx.domain.ports.locking import NullPatchLock

from .driver import BatchExecutionDriver

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from stockrx.domain.ports.locking import PatchLock
    from stockrx.domain.ports.unit_of_work import MaintenanceUnitOfWork

    from .contract import BatchResult
    from .driver import ExecutionSettings, ExecutionStatistics
    from .registry import PatchRegistry

log = logging.getLogger(__name__)

RECORDS_PER_MEMORY_UNIT = 1000
MEMORY_UNIT_MB = 1.5
LOCK_TTL_MARGIN_SECONDS = 60.0


def estimate_memory_mb(target_count: int) -> float:
    """Rough working-set estimate; advisory only."""

    return math.ceil(target_count / RECORDS_PER_MEMORY_UNIT) * MEMORY_UNIT_MB


def lock_ttl_seconds(timeout_seconds: float) -> float | None:
    """Lock lifetime for a run; a run without a time limit holds a lock that never expires."""

    if not timeout_seconds:
        return None
    return timeout_seconds + LOCK_TTL_MARGIN_SECONDS


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    patch_name: str
    dry_run: bool
    target_count: int
    statistics: ExecutionStatistics
    summary: str | None = None
    memory_estimate_mb: float = 0.0


@dataclass(frozen=True, slots=True)
class ImpactEstimate:
    patch_name: str
    target_count: int | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PatchExecutor:
    """Look up a patch, validate it, hold its lock and drive it to completion."""

    def __init__(
        self,
        registry: PatchRegistry,
        *,
        unit_of_work_factory: Callable[[], MaintenanceUnitOfWork],
        lock: PatchLock | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._unit_of_work_factory = unit_of_work_factory
        self._lock = lock or NullPatchLock()
        self._clock = clock

    def execute(
        self,
        name: str,
        options: Mapping[str, object] | None,
        settings: ExecutionSettings,
    ) -> ExecutionReport:
        registration = self._registry.find_patch(name)

        with self._unit_of_work_factory() as uow:
            patch = registration.patch_class(uow, options, dry_run=settings.dry_run)
            ttl = lock_ttl_seconds(settings.timeout_seconds)
            with self._lock.hold(name, ttl_seconds=ttl):
                target_count = patch.estimate_target_count()
                memory_estimate = estimate_memory_mb(target_count)
                if memory_estimate > settings.memory_limit_mb:
                    log.warning(
                        "Estimated memory for %s is %.1f MB, above the %s MB limit",
                        name,
                        memory_estimate,
                        settings.memory_limit_mb,
                    )
                log.info(
                    "Executing %s: targets=%s batch_size=%s dry_run=%s",
                    name,
                    target_count,
                    settings.batch_size,
                    settings.dry_run,
                )
                driver = BatchExecutionDriver(
                    settings,
                    on_batch_complete=partial(
                        self._finish_batch, uow, name, dry_run=settings.dry_run, ttl=ttl
                    ),
                    clock=self._clock,
                )
                try:
                    statistics = driver.run(patch)
                except BaseException:
                    # release the database before the lock row goes away
                    uow.rollback()
                    raise
            summary = patch.summary()

        log.info(
            "Finished %s: seen=%s succeeded=%s failed=%s in %.2fs",
            name,
            statistics.total_seen,
            statistics.succeeded,
            statistics.failed,
            statistics.elapsed_seconds,
        )
        return ExecutionReport(
            patch_name=name,
            dry_run=settings.dry_run,
            target_count=target_count,
            statistics=statistics,
            summary=summary,
            memory_estimate_mb=memory_estimate,
        )

    def check_all(self, options: Mapping[str, object] | None = None) -> list[ImpactEstimate]:
        """Estimate every registered patch; a failing patch is reported, not raised."""

        estimates: list[ImpactEstimate] = []
        for registration in self._registry.list_patches(status=None):
            try:
                with self._unit_of_work_factory() as uow:
                    patch = registration.patch_class(uow, options, dry_run=True)
                    count = patch.estimate_target_count()
            except Exception as exc:
                log.warning("Estimate failed for %s: %s", registration.name, exc)
                estimates.append(
                    ImpactEstimate(patch_name=registration.name, target_count=None, error=str(exc))
                )
                continue
            estimates.append(ImpactEstimate(patch_name=registration.name, target_count=count))
        return estimates

    def _finish_batch(
        self,
        uow: MaintenanceUnitOfWork,
        name: str,
        result: BatchResult,
        *,
        dry_run: bool,
        ttl: float | None,
    ) -> None:
        _ = result
        if dry_run:
            uow.rollback()
        else:
            uow.commit()
        if ttl is not None:
            self._lock.refresh(name, ttl_seconds=ttl)
