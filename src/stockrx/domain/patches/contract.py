"""Contract every data patch implements.

A patch validates all of its options in the constructor, before touching the
store, and then processes its target set in offset-addressed batches. The
target set must be ordered by a stable key so that increasing offsets never
skip or repeat a record while the data holds still.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from .errors import PatchOptionError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from stockrx.domain.ports.unit_of_work import MaintenanceRepositories, MaintenanceUnitOfWork

log = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class RecordOutcome:
    """Per-record audit entry. ``before``/``after`` feed the aggregate totals."""

    record_id: int | None
    success: bool
    error: str | None = None
    before: Decimal | None = None
    after: Decimal | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class BatchResult:
    count: int
    finished: bool
    records: tuple[RecordOutcome, ...] = ()

    @property
    def succeeded(self) -> int:
        return sum(1 for record in self.records if record.success)

    @property
    def failed(self) -> tuple[RecordOutcome, ...]:
        return tuple(record for record in self.records if not record.success)


class DataPatch(ABC):
    """Base class for chunked, resumable bulk mutations."""

    def __init__(
        self,
        unit_of_work: MaintenanceUnitOfWork,
        options: Mapping[str, object] | None = None,
        *,
        dry_run: bool = False,
    ) -> None:
        self.options: dict[str, object] = dict(options or {})
        self.dry_run = dry_run
        self._parse_options(self.options)
        self._uow = unit_of_work

    @property
    def repositories(self) -> MaintenanceRepositories:
        return self._uow.repositories

    @abstractmethod
    def _parse_options(self, options: Mapping[str, object]) -> None:
        """Validate and store options; raise ``PatchOptionError`` on bad input."""

    @abstractmethod
    def estimate_target_count(self) -> int:
        """Number of records the patch would touch, using the batch query's filters."""

    @abstractmethod
    def execute_batch(self, batch_size: int, offset: int) -> BatchResult: ...

    def summary(self) -> str | None:
        """Human-readable report of what the run did (or would do)."""

        return None

    def _process(self, record_id: int | None, action: Callable[[], RecordOutcome]) -> RecordOutcome:
        """Run ``action`` in its own savepoint; a failure only discards this record."""

        try:
            with self._uow.savepoint():
                return action()
        except Exception as exc:
            log.warning("%s failed for record %s: %s", type(self).__name__, record_id, exc)
            return RecordOutcome(record_id=record_id, success=False, error=str(exc))


def check_batch_window(batch_size: int, offset: int) -> None:
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive: {batch_size}")
    if offset < 0:
        raise ValueError(f"offset must not be negative: {offset}")


# Option coercion. Values arrive typed from the config layer or as raw strings
# from KEY=VALUE pairs and TOML files.


def decimal_option(
    options: Mapping[str, object], key: str, default: Decimal | None
) -> Decimal | None:
    value = options.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise PatchOptionError(key, "must be a number", value)
    if isinstance(value, Decimal):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise PatchOptionError(key, "must be a number", value) from None
    if not number.is_finite():
        raise PatchOptionError(key, "must be a finite number", value)
    return number


def int_option(options: Mapping[str, object], key: str, default: int) -> int:
    value = options.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise PatchOptionError(key, "must be an integer", value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise PatchOptionError(key, "must be an integer", value) from None


def bool_option(options: Mapping[str, object], key: str, default: bool) -> bool:
    value = options.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise PatchOptionError(key, "must be a boolean (true/false)", value)


def date_option(options: Mapping[str, object], key: str, default: date | None) -> date | None:
    value = options.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise PatchOptionError(key, "must be an ISO date (YYYY-MM-DD)", value) from None


def str_option(options: Mapping[str, object], key: str) -> str | None:
    value = options.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None
