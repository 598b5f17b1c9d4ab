"""Domain port definitions for adapters."""

from __future__ import annotations

from .metadata import (
    CatalogEntry,
    CatalogListProvider,
    MetadataHit,
    MetadataLookupProvider,
    MetadataProviderError,
    MetadataSearchProvider,
)
from .persistence import (
    CatalogStatsRepository,
    DuplicateRowError,
    ExternalIdRepository,
    GameRepository,
    OwnershipRepository,
    ReleaseDependentsRepository,
    ReleaseRepository,
    Repository,
)
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CatalogEntry",
    "CatalogListProvider",
    "CatalogRepositories",
    "CatalogStatsRepository",
    "CatalogUnitOfWork",
    "DuplicateRowError",
    "ExternalIdRepository",
    "GameRepository",
    "MetadataHit",
    "MetadataLookupProvider",
    "MetadataProviderError",
    "MetadataSearchProvider",
    "OwnershipRepository",
    "ReleaseDependentsRepository",
    "ReleaseRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
