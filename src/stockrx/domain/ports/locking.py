"""Advisory locks serialising runs of the same data patch."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator
    from contextlib import AbstractContextManager


@runtime_checkable
class PatchLock(Protocol):
    def hold(
        self, patch_name: str, *, ttl_seconds: float | None
    ) -> AbstractContextManager[None]:
        """Hold the lock for ``patch_name`` or raise ``PatchLockedError``.

        ``ttl_seconds=None`` holds it until release; the lock never goes stale.
        """
        ...

    def refresh(self, patch_name: str, *, ttl_seconds: float) -> None:
        """Push the expiry of a held lock forward or raise ``PatchLockLostError``."""
        ...


class NullPatchLock:
    """Lock that never blocks; for tests and single-process tooling."""

    @contextmanager
    def hold(self, patch_name: str, *, ttl_seconds: float | None) -> Iterator[None]:
        _ = patch_name, ttl_seconds
        yield

    def refresh(self, patch_name: str, *, ttl_seconds: float) -> None:
        _ = patch_name, ttl_seconds
