"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Source(StrEnum):
    """External providers that report ownership or progress for a title."""

    STEAM = "steam"
    PSN = "psn"
    XBOX = "xbox"
    RETROACHIEVEMENTS = "ra"


class Platform(StrEnum):
    STEAM = "steam"
    PSN = "psn"
    XBOX = "xbox"


RETROACHIEVEMENTS_PLATFORM_PREFIX = "ra-"


class MergeReason(StrEnum):
    RACE = "race"
    DUPLICATE_GAME = "duplicate_game"
    MANUAL = "manual"


class PortfolioStatus(StrEnum):
    OWNED = "owned"
    PLAYING = "playing"
    COMPLETED = "completed"
    BACKLOG = "backlog"
