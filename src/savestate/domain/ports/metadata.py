"""Ports for external title metadata and per-system catalog lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True, slots=True, kw_only=True)
class MetadataHit:
    """Best search result reported by a metadata provider."""

    external_title_id: str
    title: str
    cover_url: str | None = None
    summary: str | None = None
    genres: tuple[str, ...] = ()
    developer: str | None = None
    publisher: str | None = None
    first_release_year: int | None = None


@runtime_checkable
class MetadataSearchProvider(Protocol):
    """Best-effort title search; ``None`` means the provider has nothing useful."""

    def search_best(self, query: str) -> MetadataHit | None: ...


@runtime_checkable
class MetadataLookupProvider(Protocol):
    """Fetch one title by the provider's own id; ``None`` when the id is unknown."""

    def get_by_id(self, external_title_id: str) -> MetadataHit | None: ...


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    id: str
    title: str


@runtime_checkable
class CatalogListProvider(Protocol):
    """Full game list for one system; implementations may serve it from a cache."""

    def list_games_for_system(self, system_id: int) -> Sequence[CatalogEntry]: ...


class MetadataProviderError(RuntimeError):
    """Raised by provider adapters when a lookup fails for transport or payload reasons."""
