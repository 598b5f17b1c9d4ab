from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import inspect, select

from savestate.adapters.sqlalchemy import create_all_tables, start_mappers
from savestate.adapters.sqlalchemy.mappings import game_table, portfolio_entry_table
from savestate.domain.model import Game, PortfolioEntry, PortfolioStatus, Release

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session


def test_start_mappers_is_idempotent() -> None:
    # First invocation happens in the session_factory fixture.
    start_mappers()
    start_mappers()


def test_create_all_tables_registers_catalog_tables(sqlite_engine: Engine) -> None:
    create_all_tables(sqlite_engine)
    table_names = set(inspect(sqlite_engine).get_table_names())

    assert {
        "game",
        "release",
        "external_id_mapping",
        "portfolio_entry",
        "title_progress",
        "achievement_unlock",
        "release_enrichment_state",
        "release_merge",
    } <= table_names


def test_round_trip_keeps_types(sqlite_session: Session) -> None:
    game = Game(
        canonical_title="Hades",
        title_key="hades",
        genres=["Roguelike", "Action"],
        first_release_year=2020,
    )
    release = Release(game_id=game.id, platform_key="steam", display_title="Hades")
    entry = PortfolioEntry(
        user_id=uuid4(), release_id=release.id, status=PortfolioStatus.COMPLETED
    )
    for row in (game, release, entry):
        sqlite_session.add(row)
        sqlite_session.flush()
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = sqlite_session.execute(select(Game)).scalar_one()
    raw = sqlite_session.execute(select(game_table.c.genres)).scalar_one()
    status = sqlite_session.execute(select(portfolio_entry_table.c.status)).scalar_one()

    assert loaded.id == game.id
    assert loaded.genres == ["Roguelike", "Action"]
    assert loaded.created_at.tzinfo is not None
    assert raw == ["Roguelike", "Action"]
    assert status is PortfolioStatus.COMPLETED
