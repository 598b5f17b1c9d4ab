"""RetroAchievements per-console game lists as catalog entries."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from savestate.domain.ports import CatalogEntry, MetadataProviderError

from .client import RetroAchievementsAPIError, RetroAchievementsClient

if TYPE_CHECKING:
    from collections.abc import Sequence

    from savestate.config.retroachievements import RetroAchievementsConfig

    from .schema import RetroAchievementsGameListEntry

log = getLogger(__name__)


class GameListClient(Protocol):
    def fetch_game_list(
        self, console_id: int, *, with_achievements_only: bool = True
    ) -> list[RetroAchievementsGameListEntry]: ...


class RetroAchievementsCatalog:
    """``CatalogListProvider`` over ``API_GetGameList``; caching lives in the HTTP layer."""

    def __init__(
        self,
        *,
        config: RetroAchievementsConfig,
        client: GameListClient | None = None,
    ) -> None:
        self._client = client or RetroAchievementsClient(config=config)

    def list_games_for_system(self, system_id: int) -> Sequence[CatalogEntry]:
        try:
            rows = self._client.fetch_game_list(system_id)
        except RetroAchievementsAPIError as exc:
            raise MetadataProviderError(str(exc)) from exc
        entries = [
            CatalogEntry(id=str(row.id), title=row.title.strip())
            for row in rows
            if row.title.strip()
        ]
        log.debug("RetroAchievements console %s: %s games", system_id, len(entries))
        return entries
