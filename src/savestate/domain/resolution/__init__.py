"""Catalog identity resolution: lookup strategies, create-or-link, and merges."""

from __future__ import annotations

from .contracts import (
    Found,
    LookupFailed,
    LookupOutcome,
    NotFound,
    ResolutionPath,
    ResolutionRequest,
    ResolvedRelease,
)
from .duplicates import DuplicateCleanupResult, DuplicateGameCleaner, DuplicateGamePlan
from .enrichment import BackfillFailure, BackfillResult, MetadataBackfill, PinResult
from .errors import ResolutionError, UnusableTitleError
from .external_ids import ExternalIdResolver
from .merge import MergeReport, ReleaseMerger
from .resolver import CatalogResolver, build_strategies
from .retroachievements import RetroAchievementsMapper, RetroAchievementsMapping

__all__ = [
    "BackfillFailure",
    "BackfillResult",
    "CatalogResolver",
    "DuplicateCleanupResult",
    "DuplicateGameCleaner",
    "DuplicateGamePlan",
    "ExternalIdResolver",
    "Found",
    "LookupFailed",
    "LookupOutcome",
    "MergeReport",
    "MetadataBackfill",
    "NotFound",
    "PinResult",
    "ReleaseMerger",
    "ResolutionError",
    "ResolutionPath",
    "ResolutionRequest",
    "ResolvedRelease",
    "RetroAchievementsMapper",
    "RetroAchievementsMapping",
    "UnusableTitleError",
    "build_strategies",
]
