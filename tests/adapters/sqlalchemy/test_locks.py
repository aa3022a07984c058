from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select

from stockrx.adapters.sqlalchemy.locks import SqlAlchemyPatchLock
from stockrx.adapters.sqlalchemy.mappings import data_patch_lock_table
from stockrx.domain.patches import PatchLockLostError, PatchLockedError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _owners(engine: Engine) -> list[str]:
    with engine.connect() as connection:
        return list(connection.execute(select(data_patch_lock_table.c.owner)).scalars())


def test_second_holder_is_rejected_until_release(sqlite_engine: Engine) -> None:
    first = SqlAlchemyPatchLock(sqlite_engine, owner="worker-1")
    second = SqlAlchemyPatchLock(sqlite_engine, owner="worker-2")

    with first.hold("price_fix", ttl_seconds=60):
        assert _owners(sqlite_engine) == ["worker-1"]
        with pytest.raises(PatchLockedError, match="price_fix"):
            with second.hold("price_fix", ttl_seconds=60):
                pytest.fail("lock should not be granted twice")
        with second.hold("other_patch", ttl_seconds=60):
            assert sorted(_owners(sqlite_engine)) == ["worker-1", "worker-2"]

    assert _owners(sqlite_engine) == []
    with second.hold("price_fix", ttl_seconds=60):
        assert _owners(sqlite_engine) == ["worker-2"]


def test_expired_lock_is_taken_over(sqlite_engine: Engine) -> None:
    clock = _Clock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    stale = SqlAlchemyPatchLock(sqlite_engine, owner="crashed", clock=clock)
    stale._acquire("price_fix", 30)  # noqa: SLF001

    clock.now += timedelta(minutes=5)
    fresh = SqlAlchemyPatchLock(sqlite_engine, owner="fresh", clock=clock)

    with fresh.hold("price_fix", ttl_seconds=30):
        assert _owners(sqlite_engine) == ["fresh"]


def test_lock_is_released_when_the_body_raises(sqlite_engine: Engine) -> None:
    lock = SqlAlchemyPatchLock(sqlite_engine, owner="worker-1")

    with pytest.raises(RuntimeError), lock.hold("price_fix", ttl_seconds=60):
        raise RuntimeError("boom")

    assert _owners(sqlite_engine) == []


def test_lock_without_ttl_is_never_taken_over(sqlite_engine: Engine) -> None:
    clock = _Clock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    unlimited = SqlAlchemyPatchLock(sqlite_engine, owner="long-run", clock=clock)
    other = SqlAlchemyPatchLock(sqlite_engine, owner="other", clock=clock)

    with unlimited.hold("price_fix", ttl_seconds=None):
        clock.now += timedelta(days=2)
        with pytest.raises(PatchLockedError), other.hold("price_fix", ttl_seconds=60):
            pytest.fail("lock should still be held")
        assert _owners(sqlite_engine) == ["long-run"]

    assert _owners(sqlite_engine) == []


def test_refresh_keeps_a_slow_run_locked(sqlite_engine: Engine) -> None:
    clock = _Clock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    running = SqlAlchemyPatchLock(sqlite_engine, owner="run-1", clock=clock)
    second = SqlAlchemyPatchLock(sqlite_engine, owner="run-2", clock=clock)

    with running.hold("price_fix", ttl_seconds=60):
        clock.now += timedelta(seconds=50)
        running.refresh("price_fix", ttl_seconds=60)
        clock.now += timedelta(seconds=50)

        with pytest.raises(PatchLockedError), second.hold("price_fix", ttl_seconds=60):
            pytest.fail("refreshed lock should not be granted")


def test_refresh_after_takeover_reports_the_lost_lock(sqlite_engine: Engine) -> None:
    clock = _Clock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))
    stalled = SqlAlchemyPatchLock(sqlite_engine, owner="run-1", clock=clock)
    stalled._acquire("price_fix", 60)  # noqa: SLF001
    clock.now += timedelta(seconds=61)
    second = SqlAlchemyPatchLock(sqlite_engine, owner="run-2", clock=clock)

    with second.hold("price_fix", ttl_seconds=60):
        with pytest.raises(PatchLockLostError, match="price_fix"):
            stalled.refresh("price_fix", ttl_seconds=60)
        assert _owners(sqlite_engine) == ["run-2"]


def test_force_release_clears_any_holder(sqlite_engine: Engine) -> None:
    crashed = SqlAlchemyPatchLock(sqlite_engine, owner="crashed")
    crashed._acquire("price_fix", None)  # noqa: SLF001
    operator = SqlAlchemyPatchLock(sqlite_engine, owner="operator")

    assert operator.force_release("price_fix")
    assert not operator.force_release("price_fix")
    assert _owners(sqlite_engine) == []
