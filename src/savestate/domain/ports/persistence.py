"""Ports for persisting catalog identity and its dependent rows.

Adapters translate uniqueness violations into ``DuplicateRowError`` and leave
every other failure untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from savestate.domain.model import (
        CatalogHealth,
        ExternalIdMapping,
        Game,
        Release,
        ReleaseMerge,
    )


class DuplicateRowError(RuntimeError):
    """A write hit a uniqueness constraint; another writer got there first."""

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class GameRepository(Repository["Game"], Protocol):
    def get(self, game_id: UUID) -> Game | None: ...

    def find_by_title_key(self, title_key: str, *, limit: int) -> Sequence[Game]: ...

    def find_by_metadata_id(self, metadata_id: str) -> Game | None: ...

    def search_by_title_prefix(self, prefix: str, *, limit: int) -> Sequence[Game]: ...

    def save(self, game: Game) -> None: ...

    def delete(self, game_id: UUID) -> bool: ...

    def duplicate_title_groups(self, *, limit: int) -> Sequence[Sequence[Game]]: ...

    def list_needing_metadata(self, *, limit: int) -> Sequence[Game]: ...


@runtime_checkable
class ReleaseRepository(Repository["Release"], Protocol):
    def get(self, release_id: UUID) -> Release | None: ...

    def find_for_game(self, *, platform_key: str, game_id: UUID) -> Release | None: ...

    def list_for_game(self, game_id: UUID) -> Sequence[Release]: ...

    def move_to_game(self, release_id: UUID, game_id: UUID) -> None: ...

    def fill_missing_covers(self, game_id: UUID, cover_url: str) -> int: ...

    def delete(self, release_id: UUID) -> bool: ...


@runtime_checkable
class ExternalIdRepository(Protocol):
    """Index of ``(source, external_id) -> release``; at most one row per key."""

    def get(self, source: str, external_id: str) -> ExternalIdMapping | None: ...

    def insert_if_absent(self, mapping: ExternalIdMapping) -> bool: ...

    def point_to(self, *, source: str, external_id: str, release_id: UUID) -> None: ...

    def for_release(
        self, release_id: UUID, *, source: str | None = None
    ) -> Sequence[ExternalIdMapping]: ...

    def delete_for_release(self, release_id: UUID) -> int: ...


@runtime_checkable
class ReleaseDependentsRepository(Protocol):
    """Rows that reference a release and must follow it through a merge."""

    def reassign(self, *, loser_id: UUID, winner_id: UUID) -> dict[str, int]: ...

    def delete_release_state(self, release_id: UUID) -> int: ...

    def record_merge(self, merge: ReleaseMerge) -> None: ...


@runtime_checkable
class OwnershipRepository(Protocol):
    def record_portfolio(
        self,
        *,
        user_id: UUID,
        release_id: UUID,
        playtime_minutes: int | None,
        last_played_at: datetime | None,
    ) -> None: ...

    def record_progress(
        self,
        *,
        user_id: UUID,
        release_id: UUID,
        source: str,
        playtime_minutes: int | None,
        earned: int | None,
        total: int | None,
    ) -> None: ...

    def touch_enrichment_state(self, *, release_id: UUID, source: str) -> None: ...


@runtime_checkable
class CatalogStatsRepository(Protocol):
    def health(self) -> CatalogHealth: ...
