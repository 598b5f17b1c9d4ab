from __future__ import annotations

import os
from functools import partial
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from savestate.adapters.sqlalchemy import SqlAlchemyCatalogUnitOfWork, startup
from savestate.config import ResolverConfig

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # File backed so that independent sessions see each other's commits.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'catalog.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return startup(engine=sqlite_engine)


@pytest.fixture
def sqlite_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def uow_factory(
    session_factory: sessionmaker[Session],
) -> Callable[[], SqlAlchemyCatalogUnitOfWork]:
    return partial(SqlAlchemyCatalogUnitOfWork, session_factory)


@pytest.fixture
def resolver_config() -> ResolverConfig:
    return ResolverConfig()
