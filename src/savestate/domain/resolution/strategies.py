"""Ordered game lookup strategies.

Each strategy answers ``Found | NotFound | LookupFailed`` and the resolver walks
the list until something is found. Order is fixed: the external id mapping is
authoritative and always goes first.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from savestate.domain.matching import best_match
from savestate.domain.ports import MetadataProviderError
from savestate.domain.titles import (
    clean_for_search,
    game_title_key,
    is_likely_non_game,
)

from .contracts import Found, LookupFailed, LookupOutcome, NotFound, ResolutionPath
from .errors import ResolutionError
from .external_ids import ExternalIdResolver

if TYPE_CHECKING:
    from collections.abc import Sequence

    from savestate.domain.model import Game
    from savestate.domain.ports import CatalogRepositories, MetadataHit, MetadataSearchProvider

    from .contracts import ResolutionRequest

log = getLogger(__name__)


class GameLookupStrategy(Protocol):
    name: str

    def lookup(
        self, request: ResolutionRequest, repositories: CatalogRepositories
    ) -> LookupOutcome: ...


@dataclass(slots=True)
class ExternalIdLookup:
    name: str = "external_id"

    def lookup(
        self, request: ResolutionRequest, repositories: CatalogRepositories
    ) -> LookupOutcome:
        release_id = ExternalIdResolver(repositories.external_ids).resolve(
            request.source, request.external_id
        )
        if release_id is None:
            return NotFound(reason="no mapping")
        release = repositories.releases.get(release_id)
        if release is None:
            raise ResolutionError(
                f"Mapping {request.source}:{request.external_id} points at missing "
                f"release {release_id}"
            )
        return Found(
            game_id=release.game_id,
            release_id=release.id,
            matched_by=ResolutionPath.EXTERNAL_ID,
            confidence=1.0,
        )


@dataclass(slots=True)
class TitleKeyLookup:
    window: int
    name: str = "title_key"

    def lookup(
        self, request: ResolutionRequest, repositories: CatalogRepositories
    ) -> LookupOutcome:
        games = repositories.games.find_by_title_key(
            game_title_key(request.title), limit=self.window
        )
        if not games:
            return NotFound(reason="no game with this title key")
        # Oldest first; later duplicates are left for the duplicate-game sweep.
        return Found(game_id=games[0].id, matched_by=ResolutionPath.TITLE_KEY, confidence=1.0)


@dataclass(slots=True)
class FuzzyTitleLookup:
    window: int
    threshold: float
    name: str = "fuzzy_title"

    def lookup(
        self, request: ResolutionRequest, repositories: CatalogRepositories
    ) -> LookupOutcome:
        tokens = game_title_key(request.title).split()
        if not tokens:
            return NotFound(reason="empty title key")
        candidates = repositories.games.search_by_title_prefix(tokens[0], limit=self.window)
        match = best_match(
            request.title,
            candidates,
            title_of=_canonical_title,
            threshold=self.threshold,
        )
        if match is None:
            return NotFound(reason=f"no candidate scored {self.threshold} or more")
        return Found(
            game_id=match.candidate.id,
            matched_by=ResolutionPath.FUZZY_TITLE,
            confidence=match.score,
        )


@dataclass(slots=True)
class MetadataSearchLookup:
    provider: MetadataSearchProvider
    name: str = "metadata_search"

    def lookup(
        self, request: ResolutionRequest, repositories: CatalogRepositories
    ) -> LookupOutcome:
        if is_likely_non_game(request.title):
            return NotFound(reason="title looks like an app or add-on")
        query = clean_for_search(request.title)
        if not query:
            return NotFound(reason="empty search string")
        try:
            hit = self.provider.search_best(query)
        except MetadataProviderError as exc:
            return LookupFailed(reason=f"metadata search failed for {query!r}", error=exc)
        if hit is None:
            return NotFound(reason=f"no metadata hit for {query!r}")

        game = repositories.games.find_by_metadata_id(hit.external_title_id)
        if game is None:
            same_title = repositories.games.find_by_title_key(game_title_key(hit.title), limit=1)
            game = same_title[0] if same_title else None
        if game is None:
            return NotFound(reason="metadata hit has no local game", hint=hit)
        return Found(game_id=game.id, matched_by=ResolutionPath.METADATA_SEARCH, hint=hit)


def _canonical_title(game: Game) -> str:
    return game.canonical_title


def run_strategies(
    strategies: Sequence[GameLookupStrategy],
    request: ResolutionRequest,
    repositories: CatalogRepositories,
) -> tuple[Found | None, MetadataHit | None]:
    """Return the first ``Found`` (if any) and the last creation hint seen."""

    hint: MetadataHit | None = None
    for strategy in strategies:
        outcome = strategy.lookup(request, repositories)
        if isinstance(outcome, Found):
            log.debug(
                "Resolved %s:%s via %s", request.source, request.external_id, strategy.name
            )
            return outcome, outcome.hint or hint
        if isinstance(outcome, LookupFailed):
            log.warning(
                "Lookup %s failed for %s:%s: %s",
                strategy.name,
                request.source,
                request.external_id,
                outcome.reason,
            )
            continue
        hint = outcome.hint or hint
    return None, hint
