from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from savestate.adapters.sqlalchemy.mappings import game_table, release_merge_table, release_table
from savestate.domain.model import Game
from savestate.domain.resolution import DuplicateGameCleaner
from savestate.domain.resolution.duplicates import game_score, pick_winner
from tests.helpers.catalog import row_count, seed_game, seed_release

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session, sessionmaker

    from savestate.domain.ports import CatalogUnitOfWork

START = datetime(2025, 3, 1, tzinfo=UTC)


def _game(title: str, *, minutes: int = 0, **kwargs: str) -> Game:
    game = Game(canonical_title=title, title_key=title.lower(), **kwargs)
    game.created_at = START + timedelta(minutes=minutes)
    return game


def test_game_score_weights() -> None:
    assert game_score(_game("a"), 0) == 0
    assert game_score(_game("a", metadata_id="1"), 0) == 1000
    assert game_score(_game("a", cover_url="https://x/cover.jpg"), 2) == 120


def test_pick_winner_prefers_metadata_then_oldest() -> None:
    older = _game("Celeste")
    newer_with_metadata = _game("Celeste", minutes=5, metadata_id="26226")
    oldest_plain = _game("Celeste", minutes=-5)

    assert pick_winner([older, newer_with_metadata], {}) is newer_with_metadata
    assert pick_winner([older, oldest_plain], {}) is oldest_plain


def test_pick_winner_counts_releases() -> None:
    older = _game("Celeste")
    newer = _game("Celeste", minutes=5)

    assert pick_winner([older, newer], {newer.id: 1}) is newer


def test_pick_winner_rejects_empty_group() -> None:
    with pytest.raises(ValueError, match="empty"):
        pick_winner([], {})


def test_dry_run_reports_plan_without_writing(
    uow_factory: Callable[[], CatalogUnitOfWork],
    session_factory: sessionmaker[Session],
) -> None:
    first = seed_game(uow_factory, "Celeste", created_at=START)
    second = seed_game(uow_factory, "CELESTE", created_at=START + timedelta(hours=1))
    seed_game(uow_factory, "Hades", created_at=START)

    with uow_factory() as uow:
        result = DuplicateGameCleaner(uow).run()

    assert result.dry_run is True
    assert len(result.plans) == 1
    (plan,) = result.plans
    assert plan.title_key == "celeste"
    assert plan.winner_id == first.id
    assert plan.loser_ids == (second.id,)
    assert row_count(session_factory, game_table) == 3


def test_apply_moves_and_merges_releases(
    uow_factory: Callable[[], CatalogUnitOfWork],
    session_factory: sessionmaker[Session],
) -> None:
    plain = seed_game(uow_factory, "Celeste", created_at=START)
    enriched = seed_game(
        uow_factory, "CELESTE", metadata_id="26226", created_at=START + timedelta(hours=1)
    )
    winner_psn = seed_release(uow_factory, enriched, "psn", mappings=[("psn", "CUSA11302")])
    loser_psn = seed_release(uow_factory, plain, "psn", mappings=[("psn", "CUSA11303")])
    loser_steam = seed_release(uow_factory, plain, "steam", mappings=[("steam", "504230")])

    with uow_factory() as uow:
        result = DuplicateGameCleaner(uow).run(dry_run=False)

    assert result.plans[0].winner_id == enriched.id
    assert result.moved_releases == 1
    assert result.merged_releases == 1
    assert result.deleted_games == 1
    assert row_count(session_factory, game_table) == 1
    assert row_count(session_factory, release_table) == 2
    assert row_count(session_factory, release_merge_table) == 1

    with uow_factory() as uow:
        releases = {r.id: r.game_id for r in uow.repositories.releases.list_for_game(enriched.id)}
        mapped = uow.repositories.external_ids.get("psn", "CUSA11303")
    assert releases == {winner_psn.id: enriched.id, loser_steam.id: enriched.id}
    assert mapped is not None
    assert mapped.release_id == winner_psn.id
    assert loser_psn.id not in releases


def test_group_limit_is_at_least_one(
    uow_factory: Callable[[], CatalogUnitOfWork],
) -> None:
    for title in ("Celeste", "CELESTE", "Hades", "HADES"):
        seed_game(uow_factory, title)

    with uow_factory() as uow:
        plans = DuplicateGameCleaner(uow).plan(limit=0)

    assert [plan.title_key for plan in plans] == ["celeste"]
