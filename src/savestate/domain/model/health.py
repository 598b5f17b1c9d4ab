from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, kw_only=True)
class CatalogHealth:
    """Row counts that show how complete the catalog spine is."""

    games_total: int
    games_with_metadata: int
    games_with_cover: int
    games_without_releases: int
    duplicate_title_groups: int
    releases_total: int
    releases_without_cover: int
    mappings_total: int

    @property
    def games_pending_metadata(self) -> int:
        return self.games_total - self.games_with_metadata
