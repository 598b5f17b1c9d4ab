"""Create-or-link resolution of external records to a game and a release.

Concurrency is optimistic. The only coordination points are the unique
``(platform_key, game_id)`` on releases and the unique
``(source, external_id)`` on mappings; every write here is one committed step,
and losing a race on either constraint is handled by re-reading (or merging)
rather than failing.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import Game, MergeReason, Release
from savestate.domain.ports import DuplicateRowError
from savestate.domain.titles import game_title_key, has_usable_title, normalize_canonical_title

from .contracts import ResolutionPath, ResolutionRequest, ResolvedRelease
from .enrichment import apply_metadata
from .errors import ResolutionError, UnusableTitleError
from .external_ids import ExternalIdResolver
from .merge import ReleaseMerger
from .strategies import (
    ExternalIdLookup,
    FuzzyTitleLookup,
    GameLookupStrategy,
    MetadataSearchLookup,
    TitleKeyLookup,
    run_strategies,
)

if TYPE_CHECKING:
    from uuid import UUID

    from savestate.config import ResolverConfig
    from savestate.domain.ports import CatalogUnitOfWork, MetadataHit, MetadataSearchProvider

log = getLogger(__name__)


def build_strategies(
    config: ResolverConfig,
    metadata_search: MetadataSearchProvider | None = None,
) -> tuple[GameLookupStrategy, ...]:
    strategies: list[GameLookupStrategy] = [
        ExternalIdLookup(),
        TitleKeyLookup(window=config.candidate_window),
    ]
    if config.local_fuzzy_threshold is not None:
        strategies.append(
            FuzzyTitleLookup(
                window=config.candidate_window,
                threshold=config.local_fuzzy_threshold,
            )
        )
    if metadata_search is not None:
        strategies.append(MetadataSearchLookup(provider=metadata_search))
    return tuple(strategies)


class CatalogResolver:
    """Resolve ``(source, external_id, title, platform_key)`` to a game and release.

    The unit of work must already be entered; the resolver commits after each
    step and rolls back only the step that hit a uniqueness conflict.
    """

    def __init__(
        self,
        uow: CatalogUnitOfWork,
        *,
        config: ResolverConfig,
        metadata_search: MetadataSearchProvider | None = None,
    ) -> None:
        self._uow = uow
        self._config = config
        self._strategies = build_strategies(config, metadata_search)

    @property
    def strategies(self) -> tuple[GameLookupStrategy, ...]:
        return self._strategies

    def resolve_or_create(
        self,
        source: str,
        external_id: str,
        title: str,
        platform_key: str,
        *,
        cover_url: str | None = None,
        platform_label: str | None = None,
    ) -> ResolvedRelease:
        if not has_usable_title(title):
            raise UnusableTitleError(title)

        request = ResolutionRequest(
            source=source,
            external_id=external_id,
            title=title,
            platform_key=platform_key,
            cover_url=cover_url,
            platform_label=platform_label,
        )
        found, hint = run_strategies(self._strategies, request, self._uow.repositories)

        if found is not None and found.release_id is not None:
            return ResolvedRelease(
                game_id=found.game_id,
                release_id=found.release_id,
                matched_by=found.matched_by,
            )

        game_created = False
        if found is None:
            game_id, game_created = self._create_game(request, hint)
            matched_by = ResolutionPath.CREATED
        else:
            game_id = found.game_id
            matched_by = found.matched_by
            if found.hint is not None:
                self._enrich_game(game_id, found.hint)

        release_id, release_created = self._find_or_create_release(request, game_id)

        mapped_release_id = ExternalIdResolver(self._uow.repositories.external_ids).link(
            source=source,
            external_id=external_id,
            release_id=release_id,
        )
        self._uow.commit()

        if mapped_release_id == release_id:
            return ResolvedRelease(
                game_id=game_id,
                release_id=release_id,
                matched_by=matched_by,
                game_created=game_created,
                release_created=release_created,
            )

        return self._converge(
            request,
            mapped_release_id=mapped_release_id,
            own_release_id=release_id,
            own_game_id=game_id,
            release_created=release_created,
            game_created=game_created,
        )

    def _create_game(
        self, request: ResolutionRequest, hint: MetadataHit | None
    ) -> tuple[UUID, bool]:
        games = self._uow.repositories.games
        title = normalize_canonical_title(hint.title) if hint is not None else ""
        if not title:
            title = normalize_canonical_title(request.title)

        game = Game(canonical_title=title, title_key=game_title_key(title))
        if hint is not None:
            apply_metadata(game, hint)
        game_id = game.id
        try:
            games.add(game)
            self._uow.commit()
        except DuplicateRowError:
            self._uow.rollback()
            # Only metadata ids are unique on games, so a hint is always present here.
            existing = games.find_by_metadata_id(hint.external_title_id) if hint else None
            if existing is None:
                raise
            log.info(
                "Game for metadata id %s was created concurrently; using %s",
                existing.metadata_id,
                existing.id,
            )
            return existing.id, False

        log.info("Created game %s %r", game_id, title)
        return game_id, True

    def _enrich_game(self, game_id: UUID, hint: MetadataHit) -> None:
        repositories = self._uow.repositories
        game = repositories.games.get(game_id)
        if game is None:
            return
        changed = apply_metadata(
            game,
            hint,
            allow_title_correction=self._config.allow_title_correction,
        )
        if not changed:
            return
        cover_url = game.cover_url
        try:
            repositories.games.save(game)
            if cover_url:
                repositories.releases.fill_missing_covers(game_id, cover_url)
            self._uow.commit()
        except DuplicateRowError:
            self._uow.rollback()
            log.info(
                "Metadata id %s already belongs to another game; left game %s as is",
                hint.external_title_id,
                game_id,
            )

    def _find_or_create_release(
        self, request: ResolutionRequest, game_id: UUID
    ) -> tuple[UUID, bool]:
        repositories = self._uow.repositories
        existing = repositories.releases.find_for_game(
            platform_key=request.platform_key, game_id=game_id
        )
        if existing is not None:
            return existing.id, False

        game = repositories.games.get(game_id)
        release = Release(
            game_id=game_id,
            platform_key=request.platform_key,
            display_title=normalize_canonical_title(request.title),
            cover_url=request.cover_url or (game.cover_url if game is not None else None),
            platform_label=request.platform_label,
        )
        release_id = release.id
        try:
            repositories.releases.add(release)
            self._uow.commit()
        except DuplicateRowError:
            self._uow.rollback()
            winner = repositories.releases.find_for_game(
                platform_key=request.platform_key, game_id=game_id
            )
            if winner is None:
                raise ResolutionError(
                    f"Release insert for ({request.platform_key}, {game_id}) conflicted "
                    "but no release is visible"
                ) from None
            log.debug(
                "Lost release race for (%s, %s); using %s",
                request.platform_key,
                game_id,
                winner.id,
            )
            return winner.id, False
        return release_id, True

    def _converge(
        self,
        request: ResolutionRequest,
        *,
        mapped_release_id: UUID,
        own_release_id: UUID,
        own_game_id: UUID,
        release_created: bool,
        game_created: bool,
    ) -> ResolvedRelease:
        """Another writer's mapping won; fold whatever this call created into it.

        The answer then comes from the mapping, so it reports as an external id hit.
        """

        repositories = self._uow.repositories
        winner = repositories.releases.get(mapped_release_id)
        if winner is None:
            raise ResolutionError(
                f"Mapping {request.source}:{request.external_id} points at missing "
                f"release {mapped_release_id}"
            )
        winner_game_id = winner.game_id

        merged_release_id: UUID | None = None
        if release_created:
            ReleaseMerger(self._uow).merge(
                mapped_release_id,
                own_release_id,
                reason=MergeReason.RACE,
            )
            merged_release_id = own_release_id
        if (
            game_created
            and own_game_id != winner_game_id
            and not repositories.releases.list_for_game(own_game_id)
        ):
            repositories.games.delete(own_game_id)
            self._uow.commit()
            log.info("Removed game %s created by a lost race", own_game_id)

        return ResolvedRelease(
            game_id=winner_game_id,
            release_id=mapped_release_id,
            matched_by=ResolutionPath.EXTERNAL_ID,
            merged_release_id=merged_release_id,
        )
