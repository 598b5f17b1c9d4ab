"""Per-user rows that hang off a release, plus release-level bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .catalog import new_id, utcnow
from .enums import MergeReason, PortfolioStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class PortfolioEntry:
    id: UUID = field(default_factory=new_id)
    user_id: UUID
    release_id: UUID
    status: PortfolioStatus = PortfolioStatus.OWNED
    playtime_minutes: int | None = None
    last_played_at: datetime | None = None
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class TitleProgress:
    """Cached per-source progress (playtime, trophies, achievements earned/total)."""

    id: UUID = field(default_factory=new_id)
    user_id: UUID
    release_id: UUID
    source: str
    playtime_minutes: int | None = None
    earned: int | None = None
    total: int | None = None
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class AchievementUnlock:
    id: UUID = field(default_factory=new_id)
    user_id: UUID
    release_id: UUID
    achievement_id: str
    unlocked_at: datetime | None = None
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ReleaseEnrichmentState:
    release_id: UUID
    source: str
    attempts: int = 0
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False)
class ReleaseMerge:
    """Audit record for folding a duplicate release into its survivor."""

    winner_id: UUID
    loser_id: UUID
    reason: MergeReason = MergeReason.MANUAL
    created_at: datetime = field(default_factory=utcnow)
