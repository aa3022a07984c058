"""Database-backed advisory lock for data patch runs."""

from __future__ import annotations

import logging
import os
import socket
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError

from stockrx.adapters.sqlalchemy.mappings import data_patch_lock_table
from stockrx.domain.patches.errors import PatchLockLostError, PatchLockedError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def _expiry(now: datetime, ttl_seconds: float | None) -> datetime | None:
    return None if ttl_seconds is None else now + timedelta(seconds=ttl_seconds)


class SqlAlchemyPatchLock:
    """One ``data_patch_lock`` row per running patch.

    Rows are written in their own committed transaction, independent of the
    unit of work the patch runs in. A row whose ``expires_at`` has passed is
    treated as abandoned and replaced; a row without ``expires_at`` stays until
    its holder releases it or an operator calls :meth:`force_release`.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        owner: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine
        self.owner = owner or default_owner()
        self._clock = clock

    @contextmanager
    def hold(self, patch_name: str, *, ttl_seconds: float | None) -> Iterator[None]:
        self._acquire(patch_name, ttl_seconds)
        try:
            yield
        finally:
            self._release(patch_name)

    def _acquire(self, patch_name: str, ttl_seconds: float | None) -> None:
        now = self._clock()
        table = data_patch_lock_table
        try:
            with self._engine.begin() as connection:
                connection.execute(
                    delete(table)
                    .where(table.c.patch_name == patch_name)
                    .where(table.c.expires_at < now)
                )
                connection.execute(
                    insert(table).values(
                        patch_name=patch_name,
                        owner=self.owner,
                        acquired_at=now,
                        expires_at=_expiry(now, ttl_seconds),
                    )
                )
        except IntegrityError:
            raise PatchLockedError(patch_name) from None
        log.debug("Acquired lock for %s as %s", patch_name, self.owner)

    def _release(self, patch_name: str) -> None:
        table = data_patch_lock_table
        with self._engine.begin() as connection:
            connection.execute(
                delete(table)
                .where(table.c.patch_name == patch_name)
                .where(table.c.owner == self.owner)
            )
        log.debug("Released lock for %s", patch_name)

    def refresh(self, patch_name: str, *, ttl_seconds: float) -> None:
        table = data_patch_lock_table
        with self._engine.begin() as connection:
            result = connection.execute(
                update(table)
                .where(table.c.patch_name == patch_name)
                .where(table.c.owner == self.owner)
                .values(expires_at=_expiry(self._clock(), ttl_seconds))
            )
        if result.rowcount == 0:
            log.error("Lock for %s is no longer held by %s", patch_name, self.owner)
            raise PatchLockLostError(patch_name)

    def force_release(self, patch_name: str) -> bool:
        """Drop the lock row whoever holds it; for clearing locks left by a dead run."""

        table = data_patch_lock_table
        with self._engine.begin() as connection:
            result = connection.execute(delete(table).where(table.c.patch_name == patch_name))
        released = result.rowcount > 0
        if released:
            log.warning("Forcibly released lock for %s", patch_name)
        return released
