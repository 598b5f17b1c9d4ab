from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import event

from savestate.adapters.sqlalchemy import SqlAlchemyCatalogUnitOfWork, StartupError, startup
from savestate.adapters.sqlalchemy.mappings import game_table
from savestate.adapters.sqlalchemy.unit_of_work import (
    _enable_sqlite_foreign_keys,  # type: ignore[reportPrivateUsage]
)
from savestate.domain.model import Game
from savestate.domain.ports import CatalogRepositories
from tests.helpers.catalog import row_count

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session, sessionmaker


def test_repositories_need_an_open_unit_of_work(session_factory: sessionmaker[Session]) -> None:
    uow = SqlAlchemyCatalogUnitOfWork(session_factory)

    with pytest.raises(StartupError):
        _ = uow.repositories

    with uow:
        assert isinstance(uow.repositories, CatalogRepositories)

    with pytest.raises(StartupError):
        _ = uow.session


def test_commit_persists_and_exit_without_commit_discards(
    session_factory: sessionmaker[Session],
) -> None:
    with SqlAlchemyCatalogUnitOfWork(session_factory) as uow:
        uow.repositories.games.add(Game(canonical_title="Hades", title_key="hades"))
        uow.commit()
    with SqlAlchemyCatalogUnitOfWork(session_factory) as uow:
        uow.repositories.games.add(Game(canonical_title="Celeste", title_key="celeste"))

    assert row_count(session_factory, game_table) == 1


def test_errors_roll_back_and_propagate(session_factory: sessionmaker[Session]) -> None:
    uow_factory = partial(SqlAlchemyCatalogUnitOfWork, session_factory)

    with pytest.raises(RuntimeError, match="boom"), uow_factory() as uow:
        uow.repositories.games.add(Game(canonical_title="Hades", title_key="hades"))
        raise RuntimeError("boom")

    assert row_count(session_factory, game_table) == 0


def test_startup_registers_foreign_key_pragma_once(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine)
    startup(engine=sqlite_engine, create_tables=False)

    assert event.contains(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    with sqlite_engine.connect() as connection:
        assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar_one() == 1


def test_startup_reads_database_uri_from_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    path = tmp_path_factory.mktemp("env") / "from-env.db"
    monkeypatch.setenv("DATABASE_URI", f"sqlite+pysqlite:///{path}")

    factory = startup()
    try:
        assert row_count(factory, game_table) == 0
        assert path.exists()
    finally:
        bind = factory.kw["bind"]
        bind.dispose()
