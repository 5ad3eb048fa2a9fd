"""Engine lifecycle and unit of work for the SQLAlchemy record store.

``startup`` binds a process-wide engine (creating the ``flat_record`` table if
needed); every ``SqlAlchemyRecordUnitOfWork`` then opens its own session from
that engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from storesync.adapters.sqlalchemy.mappings import create_all_tables
from storesync.adapters.sqlalchemy.repositories import SqlAlchemyRecordRepositories
from storesync.config import get_database_config

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine


log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the record store is used before ``startup`` or started twice."""


@dataclass(slots=True)
class _EngineState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def bind(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def reset(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def require_session_factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise StartupError(
                "SQLAlchemy record store not started. Call "
                "storesync.adapters.sqlalchemy.startup() before opening a unit of work."
            )
        return self.session_factory


_STATE = _EngineState()


def _sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
    _ = connection_record
    # pysqlite must not issue its own BEGIN
    dbapi_connection.isolation_level = None


def _sqlite_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLite engines run ``Session.begin_nested`` savepoints.

    Only connections opened afterwards are affected, so call this before the
    engine first connects. Calling it again is a no-op.
    """

    if engine.dialect.name != "sqlite":
        return
    if not event.contains(engine, "connect", _sqlite_connect):
        event.listen(engine, "connect", _sqlite_connect)
    if not event.contains(engine, "begin", _sqlite_begin):
        event.listen(engine, "begin", _sqlite_begin)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Bind the record store to ``engine`` (or one built from configuration)."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy record store already started. Pass force=True to rebind.")

    if engine is None:
        config = get_database_config()
        engine = create_engine(database_uri or config.uri, echo=config.echo)
    enable_sqlite_savepoints(engine)
    create_all_tables(engine)
    _STATE.bind(engine)
    log.info("Record store bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the bound engine; a later ``startup`` may bind a new one."""

    _STATE.reset()


class SqlAlchemyRecordUnitOfWork:
    """One session-scoped transaction over the flat record collections."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or _STATE.require_session_factory()
        self._session: Session | None = None
        self._repositories: SqlAlchemyRecordRepositories | None = None

    def __enter__(self) -> SqlAlchemyRecordUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already active")
        self._session = self._session_factory()
        self._repositories = SqlAlchemyRecordRepositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> SqlAlchemyRecordRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not active")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not active")
        return self._session


if TYPE_CHECKING:
    from storesync.domain.ports.unit_of_work import RecordUnitOfWork

    _uow_check: RecordUnitOfWork = SqlAlchemyRecordUnitOfWork()
