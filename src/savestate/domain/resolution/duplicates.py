"""Sweep for games that share a title key.

Concurrent first-time syncs of the same title may each create a game before
either sees the other. Releases then converge through the mapping table, but
the extra games stay behind. This sweep folds them into one survivor, moving
releases across and merging any release that would collide on the platform.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import MergeReason
from savestate.domain.ports import DuplicateRowError

from .merge import ReleaseMerger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from savestate.domain.model import Game
    from savestate.domain.ports import CatalogUnitOfWork

log = getLogger(__name__)

DEFAULT_GROUP_LIMIT = 100
MAX_GROUP_LIMIT = 500


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateGamePlan:
    title_key: str
    winner_id: UUID
    loser_ids: tuple[UUID, ...]


@dataclass(slots=True, kw_only=True)
class DuplicateCleanupResult:
    dry_run: bool
    plans: list[DuplicateGamePlan] = field(default_factory=list[DuplicateGamePlan])
    moved_releases: int = 0
    merged_releases: int = 0
    deleted_games: int = 0


def game_score(game: Game, release_count: int) -> int:
    score = 0
    if game.metadata_id:
        score += 1000
    if game.cover_url:
        score += 100
    return score + 10 * release_count


def pick_winner(games: Sequence[Game], release_counts: dict[UUID, int]) -> Game:
    """Highest score, then oldest; equal candidates keep input order."""

    if not games:
        raise ValueError("Cannot pick a winner from an empty group")
    return max(
        games,
        key=lambda game: (
            game_score(game, release_counts.get(game.id, 0)),
            -game.created_at.timestamp(),
        ),
    )


class DuplicateGameCleaner:
    def __init__(self, uow: CatalogUnitOfWork) -> None:
        self._uow = uow

    def plan(self, *, limit: int = DEFAULT_GROUP_LIMIT) -> list[DuplicateGamePlan]:
        repositories = self._uow.repositories
        capped = min(max(limit, 1), MAX_GROUP_LIMIT)
        plans: list[DuplicateGamePlan] = []
        for group in repositories.games.duplicate_title_groups(limit=capped):
            counts = {game.id: len(repositories.releases.list_for_game(game.id)) for game in group}
            winner = pick_winner(group, counts)
            plans.append(
                DuplicateGamePlan(
                    title_key=winner.title_key,
                    winner_id=winner.id,
                    loser_ids=tuple(game.id for game in group if game.id != winner.id),
                )
            )
        return plans

    def run(
        self, *, dry_run: bool = True, limit: int = DEFAULT_GROUP_LIMIT
    ) -> DuplicateCleanupResult:
        result = DuplicateCleanupResult(dry_run=dry_run, plans=self.plan(limit=limit))
        if dry_run:
            return result
        for plan in result.plans:
            for loser_id in plan.loser_ids:
                self._fold(plan.winner_id, loser_id, result)
        log.info(
            "Duplicate game sweep: groups=%s, moved=%s, merged=%s, deleted=%s",
            len(result.plans),
            result.moved_releases,
            result.merged_releases,
            result.deleted_games,
        )
        return result

    def _fold(self, winner_id: UUID, loser_id: UUID, result: DuplicateCleanupResult) -> None:
        repositories = self._uow.repositories
        merger = ReleaseMerger(self._uow)
        for release in list(repositories.releases.list_for_game(loser_id)):
            release_id = release.id
            platform_key = release.platform_key
            target = repositories.releases.find_for_game(
                platform_key=platform_key, game_id=winner_id
            )
            if target is None:
                try:
                    repositories.releases.move_to_game(release_id, winner_id)
                    self._uow.commit()
                except DuplicateRowError:
                    self._uow.rollback()
                    target = repositories.releases.find_for_game(
                        platform_key=platform_key, game_id=winner_id
                    )
                    if target is None:
                        raise
                else:
                    result.moved_releases += 1
                    continue
            merger.merge(target.id, release_id, reason=MergeReason.DUPLICATE_GAME)
            result.merged_releases += 1

        if repositories.games.delete(loser_id):
            result.deleted_games += 1
        self._uow.commit()
