"""Batch ingest of external ownership records."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import Platform, Source
from savestate.domain.resolution import CatalogResolver, UnusableTitleError
from savestate.domain.titles import has_usable_title, is_likely_non_game

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from uuid import UUID

    from savestate.config import ResolverConfig
    from savestate.domain.ports import CatalogUnitOfWork, MetadataSearchProvider
    from savestate.domain.resolution import ResolvedRelease

log = getLogger(__name__)

STEAM_HEADER_IMAGE_URL = "https://cdn.cloudflare.steamstatic.com/steam/apps/{app_id}/header.jpg"


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalRecord:
    """One title as a source reports it, plus the user's ownership payload."""

    source: str
    external_id: str
    title: str | None
    platform_key: str
    platform_label: str | None = None
    cover_url: str | None = None
    user_id: UUID | None = None
    playtime_minutes: int | None = None
    last_played_at: datetime | None = None
    earned: int | None = None
    total: int | None = None

    @property
    def has_progress(self) -> bool:
        return any(
            value is not None for value in (self.playtime_minutes, self.earned, self.total)
        )


def steam_header_image_url(app_id: int | str) -> str:
    return STEAM_HEADER_IMAGE_URL.format(app_id=app_id)


def steam_record(
    app_id: int | str,
    name: str | None,
    *,
    user_id: UUID | None = None,
    playtime_minutes: int | None = None,
    last_played_at: datetime | None = None,
) -> ExternalRecord:
    """Steam owned-games row; nameless apps still get a stable placeholder title."""

    title = name.strip() if name and name.strip() else f"Steam App {app_id}"
    return ExternalRecord(
        source=Source.STEAM,
        external_id=str(app_id),
        title=title,
        platform_key=Platform.STEAM,
        platform_label="Steam",
        cover_url=steam_header_image_url(app_id),
        user_id=user_id,
        playtime_minutes=playtime_minutes,
        last_played_at=last_played_at,
    )


@dataclass(frozen=True, slots=True)
class RecordFailure:
    source: str
    external_id: str
    error: str


@dataclass(slots=True)
class SyncCounters:
    """Batch summary. ``imported`` counts new mappings: ``created + linked``."""

    processed: int = 0
    imported: int = 0
    mapped_existing: int = 0
    created: int = 0
    linked: int = 0
    merged: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[RecordFailure] = field(default_factory=list[RecordFailure])

    def tally(self, resolved: ResolvedRelease) -> None:
        if resolved.merged_release_id is not None:
            self.merged += 1
        if resolved.mapped_existing:
            self.mapped_existing += 1
            return
        self.imported += 1
        if resolved.release_created:
            self.created += 1
        else:
            self.linked += 1


def sync_external_records(
    records: Iterable[ExternalRecord],
    *,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    config: ResolverConfig,
    metadata_search: MetadataSearchProvider | None = None,
) -> SyncCounters:
    """Resolve each record on its own; a failing record never stops the batch."""

    counters = SyncCounters()
    with unit_of_work_factory() as uow:
        resolver = CatalogResolver(uow, config=config, metadata_search=metadata_search)
        for record in records:
            counters.processed += 1
            if not has_usable_title(record.title):
                log.info("Skipping %s:%s: no usable title", record.source, record.external_id)
                counters.skipped += 1
                continue
            title = record.title or ""
            if config.skip_non_games and is_likely_non_game(title):
                log.debug(
                    "Skipping %s:%s: %r looks like a non-game",
                    record.source,
                    record.external_id,
                    title,
                )
                counters.skipped += 1
                continue

            try:
                resolved = resolver.resolve_or_create(
                    record.source,
                    record.external_id,
                    title,
                    record.platform_key,
                    cover_url=record.cover_url,
                    platform_label=record.platform_label,
                )
                _record_ownership(uow, record, resolved.release_id)
            except UnusableTitleError:
                counters.skipped += 1
                continue
            except Exception as exc:  # noqa: BLE001
                uow.rollback()
                counters.failed += 1
                counters.failures.append(
                    RecordFailure(
                        source=record.source,
                        external_id=record.external_id,
                        error=str(exc) or type(exc).__name__,
                    )
                )
                log.warning(
                    "Failed to resolve %s:%s (%r)",
                    record.source,
                    record.external_id,
                    title,
                    exc_info=exc,
                )
                continue

            counters.tally(resolved)

    log.info(
        "Sync finished: processed=%s, imported=%s, mapped_existing=%s, created=%s, "
        "linked=%s, merged=%s, skipped=%s, failed=%s",
        counters.processed,
        counters.imported,
        counters.mapped_existing,
        counters.created,
        counters.linked,
        counters.merged,
        counters.skipped,
        counters.failed,
    )
    return counters


def _record_ownership(uow: CatalogUnitOfWork, record: ExternalRecord, release_id: UUID) -> None:
    ownership = uow.repositories.ownership
    if record.user_id is not None:
        ownership.record_portfolio(
            user_id=record.user_id,
            release_id=release_id,
            playtime_minutes=record.playtime_minutes,
            last_played_at=record.last_played_at,
        )
        if record.has_progress:
            ownership.record_progress(
                user_id=record.user_id,
                release_id=release_id,
                source=record.source,
                playtime_minutes=record.playtime_minutes,
                earned=record.earned,
                total=record.total,
            )
    ownership.touch_enrichment_state(release_id=release_id, source=record.source)
    uow.commit()
