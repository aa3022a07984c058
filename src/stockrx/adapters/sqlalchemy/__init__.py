"""SQLAlchemy adapter package for stockrx."""

from __future__ import annotations

from .locks import SqlAlchemyPatchLock
from .mappings import (
    COUNTER_DEFINITIONS,
    CountedTable,
    CounterDefinition,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyBatchRepository,
    SqlAlchemyCounterRepository,
    SqlAlchemyInventoryRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    create_database_engine,
    enable_sqlite_savepoints,
    shutdown,
    startup,
)

__all__ = [
    "COUNTER_DEFINITIONS",
    "CountedTable",
    "CounterDefinition",
    "SqlAlchemyBatchRepository",
    "SqlAlchemyCounterRepository",
    "SqlAlchemyInventoryRepository",
    "SqlAlchemyPatchLock",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "create_database_engine",
    "enable_sqlite_savepoints",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
