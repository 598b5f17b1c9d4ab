"""Domain model for the game catalog."""

from __future__ import annotations

from .catalog import ExternalIdMapping, Game, Release, new_id, utcnow
from .enums import (
    RETROACHIEVEMENTS_PLATFORM_PREFIX,
    MergeReason,
    Platform,
    PortfolioStatus,
    Source,
)
from .health import CatalogHealth
from .ownership import (
    AchievementUnlock,
    PortfolioEntry,
    ReleaseEnrichmentState,
    ReleaseMerge,
    TitleProgress,
)

__all__ = [
    "RETROACHIEVEMENTS_PLATFORM_PREFIX",
    "AchievementUnlock",
    "CatalogHealth",
    "ExternalIdMapping",
    "Game",
    "MergeReason",
    "Platform",
    "PortfolioEntry",
    "PortfolioStatus",
    "Release",
    "ReleaseEnrichmentState",
    "ReleaseMerge",
    "Source",
    "TitleProgress",
    "new_id",
    "utcnow",
]
