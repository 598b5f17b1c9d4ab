"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from savestate.adapters.igdb import IgdbMetadataSearch
from savestate.adapters.records import read_records
from savestate.adapters.retroachievements import RetroAchievementsCatalog
from savestate.adapters.sqlalchemy import SqlAlchemyCatalogUnitOfWork, startup
from savestate.config import (
    MissingConfigurationError,
    get_igdb_config,
    get_resolver_config,
    get_retroachievements_config,
)
from savestate.domain.model import MergeReason
from savestate.domain.ports import CatalogUnitOfWork, MetadataLookupProvider
from savestate.domain.resolution import (
    CatalogResolver,
    DuplicateGameCleaner,
    MetadataBackfill,
    ReleaseMerger,
    RetroAchievementsMapper,
)
from savestate.domain.resolution.duplicates import DEFAULT_GROUP_LIMIT
from savestate.domain.resolution.enrichment import DEFAULT_BACKFILL_LIMIT
from savestate.domain.sync import sync_external_records

if TYPE_CHECKING:
    from pathlib import Path
    from uuid import UUID

    from savestate.config import DatabaseConfig, ResolverConfig
    from savestate.domain.model import CatalogHealth
    from savestate.domain.ports import CatalogListProvider, MetadataSearchProvider
    from savestate.domain.resolution import (
        BackfillResult,
        DuplicateCleanupResult,
        MergeReport,
        PinResult,
        ResolvedRelease,
        RetroAchievementsMapping,
    )
    from savestate.domain.sync import SyncCounters

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]

log = getLogger(__name__)


def build_unit_of_work_factory(*, database: DatabaseConfig | None = None) -> UnitOfWorkFactory:
    session_factory = startup(database=database)
    return partial(SqlAlchemyCatalogUnitOfWork, session_factory)


def build_metadata_search() -> MetadataSearchProvider | None:
    """IGDB search when credentials are configured; resolution works without it."""

    try:
        config = get_igdb_config()
    except MissingConfigurationError as exc:
        log.info("IGDB search disabled: %s", exc)
        return None
    return IgdbMetadataSearch(config=config)


def resolve_record(
    source: str,
    external_id: str,
    title: str,
    platform_key: str,
    *,
    cover_url: str | None = None,
    platform_label: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    metadata_search: MetadataSearchProvider | None = None,
    use_metadata_search: bool = True,
    config: ResolverConfig | None = None,
) -> ResolvedRelease:
    """Resolve one external title to its catalog release, creating what is missing."""

    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    effective_config = config or get_resolver_config()
    effective_search = metadata_search
    if effective_search is None and use_metadata_search:
        effective_search = build_metadata_search()

    with effective_uow() as uow:
        resolver = CatalogResolver(
            uow, config=effective_config, metadata_search=effective_search
        )
        resolved = resolver.resolve_or_create(
            source,
            external_id,
            title,
            platform_key,
            cover_url=cover_url,
            platform_label=platform_label,
        )

    log.info(
        "Resolved %s:%s -> release %s (game %s) via %s",
        source,
        external_id,
        resolved.release_id,
        resolved.game_id,
        resolved.matched_by,
    )
    return resolved


def sync_records_file(
    path: Path,
    *,
    user_id: UUID | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    metadata_search: MetadataSearchProvider | None = None,
    use_metadata_search: bool = True,
    config: ResolverConfig | None = None,
) -> SyncCounters:
    """Import a JSON-lines file of external records; see ``savestate.adapters.records``."""

    records = read_records(path, default_user_id=user_id)
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    effective_search = metadata_search
    if effective_search is None and use_metadata_search:
        effective_search = build_metadata_search()

    log.info("Starting sync of %s records from %s", len(records), path)
    return sync_external_records(
        records,
        unit_of_work_factory=effective_uow,
        config=config or get_resolver_config(),
        metadata_search=effective_search,
    )


def merge_releases(
    winner_id: UUID,
    loser_id: UUID,
    *,
    reason: MergeReason = MergeReason.MANUAL,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergeReport:
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    with effective_uow() as uow:
        return ReleaseMerger(uow).merge(winner_id, loser_id, reason=reason)


def dedupe_games(
    *,
    dry_run: bool = True,
    limit: int = DEFAULT_GROUP_LIMIT,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> DuplicateCleanupResult:
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    with effective_uow() as uow:
        return DuplicateGameCleaner(uow).run(dry_run=dry_run, limit=limit)


def map_release_to_retroachievements(
    release_id: UUID,
    *,
    dry_run: bool = False,
    catalog: CatalogListProvider | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ResolverConfig | None = None,
) -> RetroAchievementsMapping:
    effective_catalog = catalog or RetroAchievementsCatalog(
        config=get_retroachievements_config()
    )
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    threshold = (config or get_resolver_config()).retroachievements_threshold
    with effective_uow() as uow:
        mapper = RetroAchievementsMapper(uow, effective_catalog, threshold=threshold)
        return mapper.map_release(release_id, dry_run=dry_run)


def _metadata_backfill(
    uow: CatalogUnitOfWork,
    provider: MetadataSearchProvider | None,
    config: ResolverConfig | None,
) -> MetadataBackfill:
    # Unlike resolution, backfills are pointless without a provider, so a
    # missing IGDB configuration is an error here.
    effective_provider = provider or IgdbMetadataSearch(config=get_igdb_config())
    lookup = effective_provider if isinstance(effective_provider, MetadataLookupProvider) else None
    return MetadataBackfill(
        uow,
        effective_provider,
        lookup=lookup,
        allow_title_correction=(config or get_resolver_config()).allow_title_correction,
    )


def backfill_metadata(
    *,
    limit: int = DEFAULT_BACKFILL_LIMIT,
    dry_run: bool = False,
    metadata_provider: MetadataSearchProvider | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ResolverConfig | None = None,
) -> BackfillResult:
    """Search metadata for games that have no metadata id or no cover yet."""

    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    with effective_uow() as uow:
        backfill = _metadata_backfill(uow, metadata_provider, config)
        return backfill.run(limit=limit, dry_run=dry_run)


def pin_game_metadata(
    game_id: UUID,
    metadata_id: str,
    *,
    metadata_provider: MetadataSearchProvider | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ResolverConfig | None = None,
) -> PinResult:
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    with effective_uow() as uow:
        return _metadata_backfill(uow, metadata_provider, config).pin(game_id, metadata_id)


def catalog_health(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> CatalogHealth:
    effective_uow = unit_of_work_factory or build_unit_of_work_factory()
    with effective_uow() as uow:
        return uow.repositories.stats.health()
