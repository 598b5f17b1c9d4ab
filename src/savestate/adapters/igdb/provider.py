"""IGDB-backed metadata search."""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from savestate.domain.matching import score_candidates
from savestate.domain.ports import MetadataProviderError
from savestate.domain.titles import search_variants, strip_annotations, strip_trademarks

from .client import IgdbAPIError, IgdbClient
from .translator import translate_game

if TYPE_CHECKING:
    from savestate.config.igdb import IgdbConfig
    from savestate.domain.ports import MetadataHit

    from .schema import IgdbGame

log = getLogger(__name__)

_SLUG_JUNK = re.compile(r"[^a-z0-9]+")


class IgdbGameClient(Protocol):
    def search_games(self, term: str, *, limit: int | None = None) -> list[IgdbGame]: ...

    def games_by_slug(self, slug: str) -> list[IgdbGame]: ...

    def games_by_id(self, game_id: int) -> list[IgdbGame]: ...


def slugify(title: str) -> str:
    """IGDB-style slug: lowercase, ``&`` as ``and``, runs of anything else as one dash."""

    lowered = strip_trademarks(strip_annotations(title)).lower().replace("&", "and")
    return _SLUG_JUNK.sub("-", lowered).strip("-")


def _game_name(game: IgdbGame) -> str:
    return game.name or ""


class IgdbMetadataSearch:
    """``MetadataSearchProvider`` and ``MetadataLookupProvider`` over IGDB.

    Tries each search variant of the query in turn and takes the best-scoring
    row of the first non-empty answer (IGDB's own order breaks ties). An exact
    slug lookup is the last resort.
    """

    def __init__(self, *, config: IgdbConfig, client: IgdbGameClient | None = None) -> None:
        self._client = client or IgdbClient(config=config)

    def search_best(self, query: str) -> MetadataHit | None:
        variants = search_variants(query)
        try:
            for variant in variants:
                games = self._client.search_games(variant)
                if not games:
                    continue
                best = score_candidates(variant, games, title_of=_game_name)
                chosen = best.candidate if best is not None else games[0]
                return translate_game(chosen, fallback_title=query)

            slug = slugify(query)
            if slug:
                games = self._client.games_by_slug(slug)
                if games:
                    return translate_game(games[0], fallback_title=query)
        except IgdbAPIError as exc:
            raise MetadataProviderError(str(exc)) from exc

        log.info("IGDB miss for %r (tried %s)", query, variants)
        return None

    def get_by_id(self, external_title_id: str) -> MetadataHit | None:
        if not external_title_id.isdigit():
            raise MetadataProviderError(f"Not an IGDB game id: {external_title_id!r}")
        try:
            games = self._client.games_by_id(int(external_title_id))
        except IgdbAPIError as exc:
            raise MetadataProviderError(str(exc)) from exc
        if not games:
            return None
        return translate_game(games[0], fallback_title="")
