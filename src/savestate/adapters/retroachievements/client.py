"""RetroAchievements Web API client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import ValidationError

from savestate.adapters.http_resilience import ResilientClient

from .schema import RetroAchievementsGameListEntry

if TYPE_CHECKING:
    from collections.abc import Callable

    from savestate.config.http_resilience import ResilienceConfig
    from savestate.config.retroachievements import RetroAchievementsConfig

log = getLogger(__name__)


class RetroAchievementsAPIError(RuntimeError):
    """Raised when the RetroAchievements API fails or returns an unexpected response."""


class RetroAchievementsClient:
    """Low-level HTTP client for the RetroAchievements Web API."""

    def __init__(
        self,
        *,
        config: RetroAchievementsConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_game_list(
        self, console_id: int, *, with_achievements_only: bool = True
    ) -> list[RetroAchievementsGameListEntry]:
        return asyncio.run(
            self._fetch_game_list_async(
                console_id=console_id,
                with_achievements_only=with_achievements_only,
            )
        )

    async def _fetch_game_list_async(
        self, *, console_id: int, with_achievements_only: bool
    ) -> list[RetroAchievementsGameListEntry]:
        params = {
            "z": self._config.username,
            "y": self._config.api_key,
            "i": str(console_id),
            "f": "1" if with_achievements_only else "0",
        }
        payload = await self._get_json("API_GetGameList.php", params=params)
        if not isinstance(payload, list):
            raise RetroAchievementsAPIError("Unexpected RetroAchievements game list payload")
        rows = cast(list[Any], payload)
        try:
            return [RetroAchievementsGameListEntry.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise RetroAchievementsAPIError(f"Malformed game list row: {exc}") from exc

    async def _get_json(self, path: str, *, params: dict[str, str]) -> object:
        if self._resilience.base_url is None:
            raise RetroAchievementsAPIError(
                "Missing RetroAchievements base_url in resilience configuration"
            )
        async with self._client_factory(self._resilience) as client:
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                # The request URL carries the API key; keep it out of the message.
                raise RetroAchievementsAPIError(
                    f"RetroAchievements request to {path} failed: {type(exc).__name__}"
                ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise RetroAchievementsAPIError("RetroAchievements response is not JSON") from exc
