"""IGDB API client.

IGDB takes Apicalypse query bodies over POST and answers with a JSON array.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import ValidationError

from savestate.adapters.http_resilience import ResilientClient

from .schema import IgdbGame

if TYPE_CHECKING:
    from collections.abc import Callable

    from savestate.config.http_resilience import ResilienceConfig
    from savestate.config.igdb import IgdbConfig

log = getLogger(__name__)

GAME_FIELDS = (
    "id",
    "name",
    "summary",
    "first_release_date",
    "genres.name",
    "involved_companies.company.name",
    "involved_companies.developer",
    "involved_companies.publisher",
    "cover.url",
)


class IgdbAPIError(RuntimeError):
    """Raised when the IGDB API fails or returns an unexpected response."""


def _quote(value: str) -> str:
    # Apicalypse has no escape sequence for quotes inside a string literal.
    return '"' + value.replace('"', "") + '"'


def search_query(term: str, *, limit: int) -> str:
    return f"search {_quote(term)}; fields {','.join(GAME_FIELDS)}; limit {limit};"


def slug_query(slug: str) -> str:
    return f"where slug = {_quote(slug)}; fields {','.join(GAME_FIELDS)}; limit 1;"


def id_query(game_id: int) -> str:
    return f"where id = {game_id}; fields {','.join(GAME_FIELDS)}; limit 1;"


class IgdbClient:
    """Low-level HTTP client for the IGDB ``games`` endpoint."""

    def __init__(
        self,
        *,
        config: IgdbConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def search_games(self, term: str, *, limit: int | None = None) -> list[IgdbGame]:
        body = search_query(term, limit=limit or self._config.search_limit)
        return asyncio.run(self._query_games_async(body))

    def games_by_slug(self, slug: str) -> list[IgdbGame]:
        return asyncio.run(self._query_games_async(slug_query(slug)))

    def games_by_id(self, game_id: int) -> list[IgdbGame]:
        return asyncio.run(self._query_games_async(id_query(game_id)))

    async def _query_games_async(self, body: str) -> list[IgdbGame]:
        if self._resilience.base_url is None:
            raise IgdbAPIError("Missing IGDB base_url in resilience configuration")
        async with self._client_factory(self._resilience) as client:
            try:
                response = await client.post(
                    "games",
                    content=body,
                    headers={"Content-Type": "text/plain"},
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise IgdbAPIError(f"IGDB request failed: {exc}") from exc

        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise IgdbAPIError("IGDB response is not JSON") from exc
        if not isinstance(payload, list):
            raise IgdbAPIError("Unexpected IGDB response payload")
        rows = cast(list[Any], payload)
        try:
            return [IgdbGame.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise IgdbAPIError(f"Malformed IGDB game row: {exc}") from exc
