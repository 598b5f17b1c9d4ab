"""SQLAlchemy-backed unit of work for the catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from savestate.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from savestate.adapters.sqlalchemy.repositories import (
    SqlAlchemyCatalogStatsRepository,
    SqlAlchemyExternalIdRepository,
    SqlAlchemyGameRepository,
    SqlAlchemyOwnershipRepository,
    SqlAlchemyReleaseDependentsRepository,
    SqlAlchemyReleaseRepository,
)
from savestate.config import get_database_config
from savestate.domain.ports import CatalogRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from savestate.config import DatabaseConfig

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used outside its ``with`` block."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    _ = connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _prepare_engine(engine: Engine) -> Engine:
    if engine.dialect.name == "sqlite" and not event.contains(
        engine, "connect", _enable_sqlite_foreign_keys
    ):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_engine_for(config: DatabaseConfig) -> Engine:
    return _prepare_engine(create_engine(config.uri, echo=config.echo))


def startup(
    *,
    engine: Engine | None = None,
    database: DatabaseConfig | None = None,
    create_tables: bool = True,
) -> sessionmaker[Session]:
    """Map the model, create missing tables and return a session factory."""

    if engine is None:
        engine = create_engine_for(database or get_database_config())
    else:
        _prepare_engine(engine)
    start_mappers()
    if create_tables:
        create_all_tables(engine)
    log.debug("SQLAlchemy adapter ready on %s", engine.url.render_as_string(hide_password=True))
    return sessionmaker(bind=engine, expire_on_commit=False)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
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

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyCatalogUnitOfWork(BaseSqlAlchemyUnitOfWork[CatalogRepositories]):
    """Unit of work managing SQLAlchemy sessions for catalog identity."""

    def _build_repositories(self, session: Session) -> CatalogRepositories:
        return CatalogRepositories(
            games=SqlAlchemyGameRepository(session),
            releases=SqlAlchemyReleaseRepository(session),
            external_ids=SqlAlchemyExternalIdRepository(session),
            dependents=SqlAlchemyReleaseDependentsRepository(session),
            ownership=SqlAlchemyOwnershipRepository(session),
            stats=SqlAlchemyCatalogStatsRepository(session),
        )


if TYPE_CHECKING:
    from savestate.domain.ports import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork(sessionmaker())
