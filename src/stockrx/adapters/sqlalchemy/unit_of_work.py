"""SQLAlchemy-backed unit of work for maintenance tooling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from stockrx.adapters.sqlalchemy.mappings import start_mappers
from stockrx.adapters.sqlalchemy.migrations import upgrade_head
from stockrx.adapters.sqlalchemy.repositories import (
    SqlAlchemyBatchRepository,
    SqlAlchemyCounterRepository,
    SqlAlchemyInventoryRepository,
)
from stockrx.config import get_database_config
from stockrx.domain.ports.unit_of_work import MaintenanceRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine


log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


# pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT; take over
# transaction control so begin_nested() works on SQLite.


def _sqlite_on_connect(dbapi_connection: Any, connection_record: object) -> None:
    _ = connection_record
    dbapi_connection.isolation_level = None


def _sqlite_on_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Install the pysqlite SAVEPOINT listeners; call before the first connection."""

    if engine.dialect.name != "sqlite" or event.contains(engine, "connect", _sqlite_on_connect):
        return engine
    event.listen(engine, "connect", _sqlite_on_connect)
    event.listen(engine, "begin", _sqlite_on_begin)
    return engine


def create_database_engine(database_uri: str) -> Engine:
    return enable_sqlite_savepoints(create_engine(database_uri, future=True))


@dataclass(slots=True)
class _AdapterState:
    """Process-wide engine plus the session factory bound to it."""

    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        # a new engine invalidates the factory bound to the old one
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "No database configured for maintenance runs; call "
                "stockrx.adapters.sqlalchemy.startup() first."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Map the model, migrate the schema to head and remember the engine."""

    if _STATE.engine is not None and not force:
        raise StartupError("Database already configured; pass force=True to switch engines.")

    resolved_engine = engine or create_database_engine(
        database_uri or get_database_config().uri
    )
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine
    log.debug("Maintenance database ready at %s", resolved_engine.url)
    return resolved_engine


def configured_engine() -> Engine | None:
    return _STATE.engine


def shutdown() -> None:
    """Dispose the managed engine and forget it."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block; repositories are rebuilt on every entry."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Nested transaction; an exception rolls back only the work done inside it."""

        nested = self.session.begin_nested()
        try:
            yield
            self.session.flush()
        except BaseException:
            nested.rollback()
            raise
        nested.commit()

    @property
    def repositories(self) -> TRepositories:
        self._require_session()
        return self._repositories

    @property
    def session(self) -> Session:
        return self._require_session()

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work is already open; nested use is not supported")
        self._session = session

    def _require_session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its with block")
        return self._session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[MaintenanceRepositories]):
    """Unit of work for counter reconciliation and data patches."""

    def _build_repositories(self, session: Session) -> MaintenanceRepositories:
        return MaintenanceRepositories(
            inventories=SqlAlchemyInventoryRepository(session),
            batches=SqlAlchemyBatchRepository(session),
            counters=SqlAlchemyCounterRepository(session),
        )


if TYPE_CHECKING:
    from stockrx.domain.ports.unit_of_work import MaintenanceUnitOfWork

    _uow_check: MaintenanceUnitOfWork = SqlAlchemyUnitOfWork()
