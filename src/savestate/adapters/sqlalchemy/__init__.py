"""SQLAlchemy adapter package for the catalog."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCatalogStatsRepository,
    SqlAlchemyExternalIdRepository,
    SqlAlchemyGameRepository,
    SqlAlchemyOwnershipRepository,
    SqlAlchemyReleaseDependentsRepository,
    SqlAlchemyReleaseRepository,
    UnsupportedDialectError,
)
from .unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    StartupError,
    create_engine_for,
    startup,
)

__all__ = [
    "SqlAlchemyCatalogStatsRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyExternalIdRepository",
    "SqlAlchemyGameRepository",
    "SqlAlchemyOwnershipRepository",
    "SqlAlchemyReleaseDependentsRepository",
    "SqlAlchemyReleaseRepository",
    "StartupError",
    "UnsupportedDialectError",
    "create_all_tables",
    "create_engine_for",
    "mapper_registry",
    "start_mappers",
    "startup",
]
