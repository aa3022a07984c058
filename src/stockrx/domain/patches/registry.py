"""Name-to-class lookup for data patches.

A registry is built explicitly from a list of sources (callables that register
patches on it) and can be rebuilt with :meth:`PatchRegistry.reload`. It holds
no per-execution state.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .contract import DataPatch
from .errors import DuplicatePatchError, InvalidPatchClassError, PatchNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

log = logging.getLogger(__name__)

type PatchSource = Callable[[PatchRegistry], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class PatchMetadata:
    description: str = ""
    category: str = "general"
    status: str = "active"
    target_tables: tuple[str, ...] = ()
    estimated_records: int = 0
    memory_limit: int = 500
    batch_size: int = 1000
    source: str = "manual"
    tags: tuple[str, ...] = ()
    risk_level: str = "low"


@dataclass(frozen=True, slots=True)
class PatchRegistration:
    name: str
    patch_class: type[DataPatch]
    metadata: PatchMetadata
    registered_at: datetime

    @property
    def class_name(self) -> str:
        return f"{self.patch_class.__module__}.{self.patch_class.__qualname__}"


@dataclass(frozen=True, slots=True)
class RegistryStatistics:
    total: int
    by_category: dict[str, int] = field(default_factory=dict[str, int])
    by_status: dict[str, int] = field(default_factory=dict[str, int])
    last_registered_at: datetime | None = None
    loaded_at: datetime | None = None


def validate_patch_class(patch_class: object) -> type[DataPatch]:
    if not isinstance(patch_class, type):
        raise InvalidPatchClassError(f"Expected a class, got {patch_class!r}")
    if not issubclass(patch_class, DataPatch):
        raise InvalidPatchClassError(f"{patch_class.__qualname__} does not subclass DataPatch")
    if inspect.isabstract(patch_class):
        missing = ", ".join(sorted(getattr(patch_class, "__abstractmethods__", ())))
        raise InvalidPatchClassError(
            f"{patch_class.__qualname__} does not implement: {missing}"
        )
    return patch_class


class PatchRegistry:
    """Mapping from patch name to registered class plus metadata.

    Registering a name twice raises :class:`DuplicatePatchError`; a reload
    starts from an empty mapping so sources may re-register freely.
    """

    def __init__(
        self,
        sources: Iterable[PatchSource] = (),
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sources: tuple[PatchSource, ...] = tuple(sources)
        self._clock = clock
        self._patches: dict[str, PatchRegistration] = {}
        self._loaded_at: datetime | None = None
        self._load()

    def __len__(self) -> int:
        return len(self._patches)

    def __contains__(self, name: object) -> bool:
        return name in self._patches

    @property
    def names(self) -> list[str]:
        return sorted(self._patches)

    def register_patch(
        self,
        name: str,
        patch_class: type[DataPatch],
        metadata: PatchMetadata | None = None,
    ) -> PatchRegistration:
        key = name.strip()
        if not key:
            raise ValueError("Patch name must not be empty")
        validated = validate_patch_class(patch_class)
        if key in self._patches:
            raise DuplicatePatchError(key)

        registration = PatchRegistration(
            name=key,
            patch_class=validated,
            metadata=metadata or PatchMetadata(),
            registered_at=self._clock(),
        )
        self._patches[key] = registration
        log.info("Registered data patch %s (%s)", key, registration.class_name)
        return registration

    def find_patch(self, name: str) -> PatchRegistration:
        try:
            return self._patches[name]
        except KeyError:
            raise PatchNotFoundError(name, self._patches) from None

    def patch_exists(self, name: str) -> bool:
        return name in self._patches

    def patch_metadata(self, name: str) -> PatchMetadata | None:
        registration = self._patches.get(name)
        return registration.metadata if registration is not None else None

    def list_patches(
        self,
        *,
        category: str | None = None,
        status: str | None = "active",
    ) -> list[PatchRegistration]:
        """Registered patches ordered by name; ``status=None`` includes every status."""

        return [
            registration
            for name, registration in sorted(self._patches.items())
            if (category is None or registration.metadata.category == category)
            and (status is None or registration.metadata.status == status)
        ]

    def statistics(self) -> RegistryStatistics:
        registrations = list(self._patches.values())
        return RegistryStatistics(
            total=len(registrations),
            by_category=dict(Counter(item.metadata.category for item in registrations)),
            by_status=dict(Counter(item.metadata.status for item in registrations)),
            last_registered_at=max(
                (item.registered_at for item in registrations), default=None
            ),
            loaded_at=self._loaded_at,
        )

    def reload(self) -> int:
        """Drop every registration and re-run the sources; returns the new size."""

        self._patches.clear()
        self._load()
        log.info("Data patch registry reloaded")
        return len(self._patches)

    def _load(self) -> None:
        self._loaded_at = self._clock()
        for source in self._sources:
            source(self)
        log.info("Loaded %s data patches", len(self._patches))
