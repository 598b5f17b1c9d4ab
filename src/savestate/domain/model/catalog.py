"""Catalog entities: canonical games, their platform releases, and id mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Game:
    """Platform-independent title.

    ``title_key`` is derived from ``canonical_title`` and indexed for lookups but
    deliberately not unique: two racing writers may both create a game, and the
    release/mapping constraints are what converge them.
    """

    id: UUID = field(default_factory=new_id)
    canonical_title: str
    title_key: str
    metadata_id: str | None = None
    summary: str | None = None
    genres: list[str] = field(default_factory=list)
    developer: str | None = None
    publisher: str | None = None
    first_release_year: int | None = None
    cover_url: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Release:
    """A platform edition of a game. One per ``(platform_key, game_id)``."""

    id: UUID = field(default_factory=new_id)
    game_id: UUID
    platform_key: str
    display_title: str
    cover_url: str | None = None
    platform_label: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ExternalIdMapping:
    """``(source, external_id) -> release`` index row; carries nothing else."""

    release_id: UUID
    source: str
    external_id: str
