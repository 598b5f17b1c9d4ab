"""Fakes and seed helpers for catalog tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from savestate.domain.model import ExternalIdMapping, Game, Release
from savestate.domain.ports import MetadataProviderError
from savestate.domain.titles import game_title_key

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from sqlalchemy import Table
    from sqlalchemy.orm import Session, sessionmaker

    from savestate.domain.ports import CatalogEntry, CatalogUnitOfWork, MetadataHit


class FakeMetadataSearch:
    """Answers from a fixed ``query -> hit`` table and records every query."""

    def __init__(
        self,
        hits: dict[str, MetadataHit] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._hits = hits or {}
        self._error = error
        self.queries: list[str] = []

    def search_best(self, query: str) -> MetadataHit | None:
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        return self._hits.get(query)


class FailingMetadataSearch(FakeMetadataSearch):
    def __init__(self) -> None:
        super().__init__(error=MetadataProviderError("IGDB unavailable"))


class FakeMetadataProvider(FakeMetadataSearch):
    """Search plus lookup by id from a fixed ``id -> hit`` table."""

    def __init__(
        self,
        hits: dict[str, MetadataHit] | None = None,
        *,
        by_id: dict[str, MetadataHit] | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__(hits, error=error)
        self._by_id = by_id or {}
        self.looked_up: list[str] = []

    def get_by_id(self, external_title_id: str) -> MetadataHit | None:
        self.looked_up.append(external_title_id)
        if self._error is not None:
            raise self._error
        return self._by_id.get(external_title_id)


class FakeCatalogList:
    def __init__(
        self,
        games_by_system: dict[int, list[CatalogEntry]] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._games = games_by_system or {}
        self._error = error
        self.requested: list[int] = []

    def list_games_for_system(self, system_id: int) -> Sequence[CatalogEntry]:
        self.requested.append(system_id)
        if self._error is not None:
            raise self._error
        return self._games.get(system_id, [])


def seed_game(
    uow_factory: Callable[[], CatalogUnitOfWork],
    title: str,
    *,
    metadata_id: str | None = None,
    cover_url: str | None = None,
    created_at: datetime | None = None,
) -> Game:
    game = Game(
        canonical_title=title,
        title_key=game_title_key(title),
        metadata_id=metadata_id,
        cover_url=cover_url,
    )
    if created_at is not None:
        game.created_at = created_at
    with uow_factory() as uow:
        uow.repositories.games.add(game)
        uow.commit()
    return game


def seed_release(
    uow_factory: Callable[[], CatalogUnitOfWork],
    game: Game,
    platform_key: str,
    *,
    mappings: Sequence[tuple[str, str]] = (),
    cover_url: str | None = None,
    display_title: str | None = None,
) -> Release:
    release = Release(
        game_id=game.id,
        platform_key=platform_key,
        display_title=display_title or game.canonical_title,
        cover_url=cover_url,
    )
    with uow_factory() as uow:
        uow.repositories.releases.add(release)
        for source, external_id in mappings:
            uow.repositories.external_ids.insert_if_absent(
                ExternalIdMapping(release_id=release.id, source=source, external_id=external_id)
            )
        uow.commit()
    return release


def row_count(session_factory: sessionmaker[Session], table: Table) -> int:
    with session_factory() as session:
        return session.execute(select(func.count()).select_from(table)).scalar_one()
