"""Shared fixtures for RetroAchievements adapter tests."""

from __future__ import annotations

import pytest

from savestate.config.http_resilience import ResilienceConfig
from savestate.config.retroachievements import (
    DEFAULT_RETROACHIEVEMENTS_BASE_URL,
    RetroAchievementsConfig,
)


@pytest.fixture
def ra_config() -> RetroAchievementsConfig:
    return RetroAchievementsConfig(
        username="player-one",
        api_key="secret-key",
        resilience=ResilienceConfig(
            name="retroachievements",
            base_url=DEFAULT_RETROACHIEVEMENTS_BASE_URL,
            cache=None,
        ),
    )


@pytest.fixture
def snes_game_list() -> list[dict[str, object]]:
    return [
        {
            "ID": 1448,
            "Title": "Super Metroid",
            "ConsoleID": 3,
            "ConsoleName": "SNES/Super Famicom",
            "ImageIcon": "/Images/066831.png",
            "NumAchievements": 54,
            "Points": 640,
            "DateModified": "2023-08-10 21:47:56",
        },
        {"ID": 228, "Title": " Super Mario World ", "ConsoleID": 3, "NumAchievements": 89},
        {"ID": 9999, "Title": "   ", "ConsoleID": 3},
    ]
