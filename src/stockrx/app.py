"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from stockrx.adapters.patch_config import config_file_source, read_patch_config
from stockrx.adapters.sqlalchemy.locks import SqlAlchemyPatchLock
from stockrx.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    configured_engine,
    startup,
)
from stockrx.config import ConfigurationError, get_patch_config_path
from stockrx.domain.counters import CounterReconciler
from stockrx.domain.patches import (
    BATCH_EXPIRY_UPDATE,
    PatchExecutor,
    PatchRegistry,
    register_builtin_patches,
)
from stockrx.domain.ports.unit_of_work import MaintenanceUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from stockrx.adapters.patch_config import (
        PatchConfigFile,
        ScheduledExpiryUpdate,
        SecuritySettings,
    )
    from stockrx.config import ExecutorConfig
    from stockrx.domain.counters import (
        AggregateReport,
        CountedEntity,
        CounterReading,
        Discrepancy,
    )
    from stockrx.domain.patches import ExecutionReport, ImpactEstimate
    from stockrx.domain.ports.locking import PatchLock

UnitOfWorkFactory = Callable[[], MaintenanceUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> Engine:
    engine = configured_engine()
    return engine if engine is not None else startup()


def load_patch_config(env: Mapping[str, str] | None = None) -> PatchConfigFile:
    return read_patch_config(get_patch_config_path(env=env))


def build_registry(
    *,
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> PatchRegistry:
    """Registry holding the built-in patches plus those listed in the config file."""

    path = config_path or get_patch_config_path(env=env)
    return PatchRegistry(sources=(register_builtin_patches, config_file_source(path)))


def check_security(settings: ExecutorConfig, security: SecuritySettings) -> None:
    if settings.batch_size > security.max_batch_size:
        raise ConfigurationError(
            f"BATCH_SIZE {settings.batch_size} exceeds the configured maximum "
            f"of {security.max_batch_size}"
        )
    if not settings.timeout_seconds:
        raise ConfigurationError(
            "TIMEOUT 0 disables the time limit, which the configured maximum "
            f"of {security.max_timeout_seconds}s does not allow"
        )
    if settings.timeout_seconds > security.max_timeout_seconds:
        raise ConfigurationError(
            f"TIMEOUT {settings.timeout_seconds} exceeds the configured maximum "
            f"of {security.max_timeout_seconds}"
        )


def execute_patch(
    name: str,
    *,
    options: Mapping[str, object] | None,
    settings: ExecutorConfig,
    registry: PatchRegistry,
    security: SecuritySettings | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    lock: PatchLock | None = None,
) -> ExecutionReport:
    """Run one registered patch against the configured database."""

    if security is not None:
        check_security(settings, security)
    engine = _ensure_started()
    executor = PatchExecutor(
        registry,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        lock=lock or SqlAlchemyPatchLock(engine),
    )
    log.info(
        "Starting data patch %s: batch_size=%s, timeout=%s, dry_run=%s",
        name,
        settings.batch_size,
        settings.timeout_seconds,
        settings.dry_run,
    )
    return executor.execute(name, options, settings)


def check_all_patches(
    *,
    options: Mapping[str, object] | None,
    registry: PatchRegistry,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[ImpactEstimate]:
    _ensure_started()
    executor = PatchExecutor(
        registry,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
    )
    return executor.check_all(options)


def run_scheduled_expiry_update(
    *,
    settings: ExecutorConfig,
    registry: PatchRegistry,
    schedule: ScheduledExpiryUpdate,
    security: SecuritySettings | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    lock: PatchLock | None = None,
) -> ExecutionReport:
    """Daily expiry sweep with the scheduled grace period and warning window."""

    options = {
        "grace_period": schedule.grace_period,
        "include_expiring_soon": schedule.include_expiring_soon,
        "warning_days": schedule.warning_days,
    }
    return execute_patch(
        BATCH_EXPIRY_UPDATE,
        options=options,
        settings=settings,
        registry=registry,
        security=security,
        unit_of_work_factory=unit_of_work_factory,
        lock=lock,
    )


def release_patch_lock(name: str) -> bool:
    """Clear the run lock of ``name``; returns whether a lock row existed."""

    return SqlAlchemyPatchLock(_ensure_started()).force_release(name)


def counter_stats(
    kind: CountedEntity,
    entity_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[CounterReading, ...]:
    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        return CounterReconciler(uow).counter_stats(kind, entity_id)


def fix_counters(
    kind: CountedEntity,
    entity_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[Discrepancy]:
    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        repaired = CounterReconciler(uow).fix_integrity(kind, entity_id)
        uow.commit()
    log.info("Fixed %s counters on %s %s", len(repaired), kind, entity_id)
    return repaired


def scan_counters(
    kind: CountedEntity,
    *,
    repair: bool = False,
    top: int | None = 5,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> AggregateReport:
    _ensure_started()
    with (unit_of_work_factory or SqlAlchemyUnitOfWork)() as uow:
        report = CounterReconciler(uow).bulk_scan(kind, repair=repair, top=top)
        if repair:
            uow.commit()
    return report
