"""RetroAchievements catalog adapter."""

from __future__ import annotations

from .client import RetroAchievementsAPIError, RetroAchievementsClient
from .provider import RetroAchievementsCatalog

__all__ = [
    "RetroAchievementsAPIError",
    "RetroAchievementsCatalog",
    "RetroAchievementsClient",
]
