from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from savestate.adapters.retroachievements import (
    RetroAchievementsAPIError,
    RetroAchievementsCatalog,
)
from savestate.adapters.retroachievements.schema import RetroAchievementsGameListEntry
from savestate.domain.ports import CatalogEntry, CatalogListProvider, MetadataProviderError

if TYPE_CHECKING:
    from savestate.config.retroachievements import RetroAchievementsConfig


class FakeGameListClient:
    def __init__(
        self,
        rows: list[RetroAchievementsGameListEntry],
        *,
        error: RetroAchievementsAPIError | None = None,
    ) -> None:
        self._rows = rows
        self._error = error
        self.consoles: list[int] = []

    def fetch_game_list(
        self, console_id: int, *, with_achievements_only: bool = True
    ) -> list[RetroAchievementsGameListEntry]:
        assert with_achievements_only
        self.consoles.append(console_id)
        if self._error is not None:
            raise self._error
        return self._rows


def test_schema_reads_api_field_names(snes_game_list: list[dict[str, object]]) -> None:
    entry = RetroAchievementsGameListEntry.model_validate(snes_game_list[0])

    assert entry.id == 1448
    assert entry.title == "Super Metroid"
    assert entry.console_name == "SNES/Super Famicom"
    assert entry.points == 640
    assert RetroAchievementsGameListEntry(id=1, title="Tetris").title == "Tetris"


def test_catalog_entries_skip_blank_titles(
    ra_config: RetroAchievementsConfig,
    snes_game_list: list[dict[str, object]],
) -> None:
    rows = [RetroAchievementsGameListEntry.model_validate(row) for row in snes_game_list]
    client = FakeGameListClient(rows)
    catalog = RetroAchievementsCatalog(config=ra_config, client=client)

    entries = catalog.list_games_for_system(3)

    assert isinstance(catalog, CatalogListProvider)
    assert list(entries) == [
        CatalogEntry("1448", "Super Metroid"),
        CatalogEntry("228", "Super Mario World"),
    ]
    assert client.consoles == [3]


def test_catalog_errors_become_provider_errors(ra_config: RetroAchievementsConfig) -> None:
    client = FakeGameListClient([], error=RetroAchievementsAPIError("request failed"))
    catalog = RetroAchievementsCatalog(config=ra_config, client=client)

    with pytest.raises(MetadataProviderError, match="request failed"):
        catalog.list_games_for_system(3)
