from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from stockrx.domain.patches import (
    PRICE_ADJUSTMENT,
    PatchExecutor,
    PatchLockLostError,
    PatchLockedError,
    PatchNotFoundError,
    PatchOptionError,
    PatchRegistry,
    estimate_memory_mb,
    lock_ttl_seconds,
    register_builtin_patches,
)
from tests.helpers.inventory import make_inventory
from tests.support.fakes import FakeInventoryRepository, FakeUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class _Settings:
    batch_size: int = 2
    memory_limit_mb: int = 500
    timeout_seconds: float = 60
    dry_run: bool = False


class _RecordingLock:
    def __init__(self, *, locked: bool = False, lost: bool = False) -> None:
        self.locked = locked
        self.lost = lost
        self.held: list[tuple[str, float | None]] = []
        self.refreshed: list[tuple[str, float]] = []
        self.released = 0

    def refresh(self, patch_name: str, *, ttl_seconds: float) -> None:
        if self.lost:
            raise PatchLockLostError(patch_name)
        self.refreshed.append((patch_name, ttl_seconds))

    @contextmanager
    def hold(self, patch_name: str, *, ttl_seconds: float | None) -> Iterator[None]:
        if self.locked:
            raise PatchLockedError(patch_name)
        self.held.append((patch_name, ttl_seconds))
        try:
            yield
        finally:
            self.released += 1


def _executor(
    uow: FakeUnitOfWork, lock: _RecordingLock | None = None
) -> PatchExecutor:
    registry = PatchRegistry(sources=(register_builtin_patches,))
    return PatchExecutor(registry, unit_of_work_factory=lambda: uow, lock=lock)


def _uow_with_prices(*prices: str) -> FakeUnitOfWork:
    return FakeUnitOfWork(
        inventories=FakeInventoryRepository(make_inventory(price=price) for price in prices)
    )


def test_estimate_memory_mb() -> None:
    assert estimate_memory_mb(0) == 0
    assert estimate_memory_mb(1) == 1.5
    assert estimate_memory_mb(2500) == 4.5


def test_execute_commits_each_batch_and_reports() -> None:
    uow = _uow_with_prices("100", "200", "300")
    lock = _RecordingLock()

    report = _executor(uow, lock).execute(
        PRICE_ADJUSTMENT,
        {"adjustment_type": "percentage", "adjustment_value": "50"},
        _Settings(),
    )

    assert report.target_count == 3
    assert report.statistics.total_seen == 3
    assert report.statistics.total_after == Decimal(900)
    assert report.summary is not None
    assert uow.commits == 2
    assert uow.rollbacks == 0
    assert lock.held == [(PRICE_ADJUSTMENT, 120)]
    assert lock.refreshed == [(PRICE_ADJUSTMENT, 120)] * 2
    assert lock.released == 1


def test_lock_ttl_follows_the_timeout() -> None:
    assert lock_ttl_seconds(60) == 120
    assert lock_ttl_seconds(0) is None


def test_unlimited_run_holds_a_lock_that_never_expires() -> None:
    uow = _uow_with_prices("100", "200", "300")
    lock = _RecordingLock()

    report = _executor(uow, lock).execute(
        PRICE_ADJUSTMENT, {"adjustment_value": "10"}, _Settings(timeout_seconds=0)
    )

    assert report.statistics.total_seen == 3
    assert lock.held == [(PRICE_ADJUSTMENT, None)]
    assert lock.refreshed == []


def test_lost_lock_stops_the_run_after_the_current_batch() -> None:
    uow = _uow_with_prices("100", "200", "300")
    lock = _RecordingLock(lost=True)

    with pytest.raises(PatchLockLostError, match=PRICE_ADJUSTMENT):
        _executor(uow, lock).execute(PRICE_ADJUSTMENT, {"adjustment_value": "10"}, _Settings())

    assert uow.commits == 1
    assert uow.rollbacks == 2
    assert lock.released == 1


def test_dry_run_rolls_back_every_batch() -> None:
    uow = _uow_with_prices("100", "200", "300")

    report = _executor(uow).execute(
        PRICE_ADJUSTMENT, {"adjustment_value": "10"}, _Settings(dry_run=True)
    )

    assert report.dry_run
    assert report.statistics.delta == Decimal(60)
    assert uow.commits == 0
    assert uow.rollbacks == 2


def test_unknown_patch_raises_before_opening_a_unit_of_work() -> None:
    uow = FakeUnitOfWork()

    with pytest.raises(PatchNotFoundError):
        _executor(uow).execute("nope", {}, _Settings())

    assert uow.commits == uow.rollbacks == 0


def test_invalid_options_never_take_the_lock() -> None:
    lock = _RecordingLock()

    with pytest.raises(PatchOptionError):
        _executor(FakeUnitOfWork(), lock).execute(
            PRICE_ADJUSTMENT, {"adjustment_type": "bogus"}, _Settings()
        )

    assert lock.held == []


def test_locked_patch_is_rejected() -> None:
    uow = _uow_with_prices("100")

    with pytest.raises(PatchLockedError, match=PRICE_ADJUSTMENT):
        _executor(uow, _RecordingLock(locked=True)).execute(PRICE_ADJUSTMENT, {}, _Settings())

    assert uow.commits == 0


def test_check_all_reports_estimates_and_errors() -> None:
    uow = _uow_with_prices("100", "200")

    estimates = _executor(uow).check_all({"adjustment_type": "bogus"})

    by_name = {estimate.patch_name: estimate for estimate in estimates}
    assert by_name[PRICE_ADJUSTMENT].error is not None
    assert not by_name[PRICE_ADJUSTMENT].ok
    assert by_name["batch_expiry_update"].ok
    assert by_name["batch_expiry_update"].target_count == 0
