"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from .persistence import (
        CatalogStatsRepository,
        ExternalIdRepository,
        GameRepository,
        OwnershipRepository,
        ReleaseDependentsRepository,
        ReleaseRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Catalog writers commit after every step, so ``rollback`` only ever discards
    the step that just failed.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CatalogRepositories(RepositoryCollection):
    """Repositories required to resolve and merge catalog identities."""

    games: GameRepository
    releases: ReleaseRepository
    external_ids: ExternalIdRepository
    dependents: ReleaseDependentsRepository
    ownership: OwnershipRepository
    stats: CatalogStatsRepository


type CatalogUnitOfWork = UnitOfWork[CatalogRepositories]
