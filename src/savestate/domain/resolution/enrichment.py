"""Opportunistic metadata backfill for games.

Covers are never downgraded: a game's cover is only replaced when it is
missing or a known placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import utcnow
from savestate.domain.ports import DuplicateRowError, MetadataProviderError
from savestate.domain.titles import (
    clean_for_search,
    comparison_key,
    game_title_key,
    has_usable_title,
    is_likely_non_game,
    normalize_canonical_title,
    title_tokens,
)

from .errors import ResolutionError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from savestate.domain.model import Game
    from savestate.domain.ports import (
        CatalogUnitOfWork,
        MetadataHit,
        MetadataLookupProvider,
        MetadataSearchProvider,
    )

log = getLogger(__name__)

DEFAULT_BACKFILL_LIMIT = 100
MAX_BACKFILL_LIMIT = 500
MAX_BACKFILL_CANDIDATES = 6

PLACEHOLDER_COVER_MARKERS = ("unknown.png", "placeholder")


def should_overwrite_cover(current: str | None) -> bool:
    if not current or not current.strip():
        return True
    lowered = current.strip().lower()
    return any(marker in lowered for marker in PLACEHOLDER_COVER_MARKERS)


def corrected_title(current: str, candidate: str) -> str | None:
    """Return ``candidate`` when it is a strictly more complete spelling of ``current``.

    It must differ ignoring case, be longer, and keep every token of the
    current title, so "Witcher 3" may become "The Witcher 3: Wild Hunt" but
    "Halo 3" never becomes "Halo 4".
    """

    proposed = normalize_canonical_title(candidate)
    if not proposed or proposed.casefold() == current.casefold():
        return None
    if len(proposed) <= len(current):
        return None
    if not title_tokens(current) <= title_tokens(proposed):
        return None
    return proposed


def apply_metadata(game: Game, hit: MetadataHit, *, allow_title_correction: bool = False) -> bool:
    """Fill gaps on ``game`` from ``hit``. Returns whether anything changed."""

    changed = False
    if game.metadata_id is None:
        game.metadata_id = hit.external_title_id
        changed = True
    for attribute in ("summary", "developer", "publisher", "first_release_year"):
        value = getattr(hit, attribute)
        if value is not None and getattr(game, attribute) is None:
            setattr(game, attribute, value)
            changed = True
    if hit.genres and not game.genres:
        game.genres = list(hit.genres)
        changed = True
    if hit.cover_url and should_overwrite_cover(game.cover_url):
        game.cover_url = hit.cover_url
        changed = True
    if allow_title_correction:
        better = corrected_title(game.canonical_title, hit.title)
        if better is not None:
            log.info("Correcting title of game %s: %r -> %r", game.id, game.canonical_title, better)
            game.canonical_title = better
            game.title_key = comparison_key(better)
            changed = True
    if changed:
        game.updated_at = utcnow()
    return changed


def pin_metadata(game: Game, hit: MetadataHit) -> None:
    """Make ``hit`` authoritative for ``game``: id and title, plus every field it carries."""

    game.metadata_id = hit.external_title_id
    title = normalize_canonical_title(hit.title)
    if title:
        game.canonical_title = title
        game.title_key = game_title_key(title)
    for attribute in ("summary", "developer", "publisher", "first_release_year", "cover_url"):
        value = getattr(hit, attribute)
        if value is not None:
            setattr(game, attribute, value)
    if hit.genres:
        game.genres = list(hit.genres)
    game.updated_at = utcnow()


def backfill_candidates(canonical_title: str, release_titles: Sequence[str]) -> list[str]:
    """Search strings for a game, best first.

    Release titles come straight from storefronts and are often cleaner than a
    canonical title built from a mangled one, so the three shortest go first.
    """

    shortest = sorted((title.strip() for title in release_titles if title.strip()), key=len)
    candidates = [clean_for_search(title) for title in (*shortest[:3], canonical_title)]
    return list(dict.fromkeys(c for c in candidates if c))[:MAX_BACKFILL_CANDIDATES]


@dataclass(frozen=True, slots=True)
class BackfillFailure:
    game_id: UUID
    title: str
    error: str


@dataclass(slots=True, kw_only=True)
class BackfillResult:
    dry_run: bool
    processed: int = 0
    updated_ids: int = 0
    updated_covers: int = 0
    updated_releases: int = 0
    skipped: int = 0
    failures: list[BackfillFailure] = field(default_factory=list[BackfillFailure])


@dataclass(frozen=True, slots=True, kw_only=True)
class PinResult:
    game_id: UUID
    metadata_id: str
    canonical_title: str
    cover_url: str | None
    releases_updated: int


class MetadataBackfill:
    """Fill metadata ids and covers for games the inline resolver left bare.

    Games without a metadata id are searched by title; games that have one
    but no cover are looked up by that id when a lookup provider is given.
    Each game is one committed step.
    """

    def __init__(
        self,
        uow: CatalogUnitOfWork,
        search: MetadataSearchProvider,
        *,
        lookup: MetadataLookupProvider | None = None,
        allow_title_correction: bool = False,
    ) -> None:
        self._uow = uow
        self._search = search
        self._lookup = lookup
        self._allow_title_correction = allow_title_correction

    def run(self, *, limit: int = DEFAULT_BACKFILL_LIMIT, dry_run: bool = False) -> BackfillResult:
        repositories = self._uow.repositories
        capped = min(max(limit, 1), MAX_BACKFILL_LIMIT)
        result = BackfillResult(dry_run=dry_run)
        for game in repositories.games.list_needing_metadata(limit=capped):
            result.processed += 1
            self._backfill_game(game, result)
        log.info(
            "Metadata backfill%s: processed=%s, ids=%s, covers=%s, releases=%s, skipped=%s",
            " (dry run)" if dry_run else "",
            result.processed,
            result.updated_ids,
            result.updated_covers,
            result.updated_releases,
            result.skipped,
        )
        return result

    def _backfill_game(self, game: Game, result: BackfillResult) -> None:
        repositories = self._uow.repositories
        game_id = game.id
        title = game.canonical_title.strip()
        if not has_usable_title(title) or is_likely_non_game(title):
            result.skipped += 1
            return

        try:
            hit = self._find_hit(game)
        except MetadataProviderError as exc:
            log.warning("Metadata backfill for game %s (%r) failed: %s", game_id, title, exc)
            result.failures.append(BackfillFailure(game_id=game_id, title=title, error=str(exc)))
            result.skipped += 1
            return
        if hit is None:
            result.skipped += 1
            return

        if game.metadata_id is None:
            owner = repositories.games.find_by_metadata_id(hit.external_title_id)
            if owner is not None and owner.id != game_id:
                log.info(
                    "Metadata id %s for game %s (%r) already belongs to game %s",
                    hit.external_title_id,
                    game_id,
                    title,
                    owner.id,
                )
                result.skipped += 1
                return

        target = replace(game) if result.dry_run else game
        had_metadata_id = target.metadata_id is not None
        previous_cover = target.cover_url
        if not apply_metadata(target, hit, allow_title_correction=self._allow_title_correction):
            result.skipped += 1
            return
        new_id = not had_metadata_id
        new_cover = target.cover_url != previous_cover

        releases_updated = 0
        if not result.dry_run:
            try:
                repositories.games.save(target)
                if target.cover_url:
                    releases_updated = repositories.releases.fill_missing_covers(
                        game_id, target.cover_url
                    )
                self._uow.commit()
            except DuplicateRowError:
                self._uow.rollback()
                log.info("Metadata id %s was claimed concurrently; skipped", hit.external_title_id)
                result.skipped += 1
                return

        result.updated_ids += int(new_id)
        result.updated_covers += int(new_cover)
        result.updated_releases += releases_updated

    def _find_hit(self, game: Game) -> MetadataHit | None:
        if game.metadata_id is not None:
            if self._lookup is None:
                return None
            return self._lookup.get_by_id(game.metadata_id)

        release_titles = [
            release.display_title
            for release in self._uow.repositories.releases.list_for_game(game.id)
        ]
        for candidate in backfill_candidates(game.canonical_title, release_titles):
            hit = self._search.search_best(candidate)
            if hit is not None:
                return hit
        return None

    def pin(self, game_id: UUID, metadata_id: str) -> PinResult:
        """Attach ``metadata_id`` to a game by hand, overwriting what search guessed."""

        if self._lookup is None:
            raise ResolutionError("Pinning needs a provider that can look titles up by id")
        repositories = self._uow.repositories
        game = repositories.games.get(game_id)
        if game is None:
            raise ResolutionError(f"Game {game_id} does not exist")
        owner = repositories.games.find_by_metadata_id(metadata_id)
        if owner is not None and owner.id != game_id:
            raise ResolutionError(
                f"Metadata id {metadata_id} already belongs to game {owner.id}; merge them instead"
            )
        hit = self._lookup.get_by_id(metadata_id)
        if hit is None:
            raise ResolutionError(f"No metadata found for id {metadata_id}")

        pin_metadata(game, hit)
        releases_updated = 0
        try:
            repositories.games.save(game)
            if game.cover_url:
                releases_updated = repositories.releases.fill_missing_covers(
                    game_id, game.cover_url
                )
            self._uow.commit()
        except DuplicateRowError as exc:
            self._uow.rollback()
            raise ResolutionError(f"Metadata id {metadata_id} was claimed concurrently") from exc

        log.info("Pinned game %s to metadata id %s (%r)", game_id, metadata_id, game.canonical_title)
        return PinResult(
            game_id=game_id,
            metadata_id=metadata_id,
            canonical_title=game.canonical_title,
            cover_url=game.cover_url,
            releases_updated=releases_updated,
        )
