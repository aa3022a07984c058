"""Counter cache reconciliation."""

from __future__ import annotations

from .contracts import (
    AggregateReport,
    CountedEntity,
    CounterError,
    CounterReading,
    Discrepancy,
    EntityFailure,
    EntityNotFoundError,
    EntityRef,
    EntityReport,
    UnknownCounterError,
)
from .engine import DEFAULT_TOP_OFFENDERS, CounterReconciler

__all__ = [
    "DEFAULT_TOP_OFFENDERS",
    "AggregateReport",
    "CountedEntity",
    "CounterError",
    "CounterReading",
    "CounterReconciler",
    "Discrepancy",
    "EntityFailure",
    "EntityNotFoundError",
    "EntityRef",
    "EntityReport",
    "UnknownCounterError",
]
