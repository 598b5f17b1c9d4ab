from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from typing import TYPE_CHECKING

import httpx
import pytest

from savestate.adapters.http_resilience import ResilientClient
from savestate.adapters.retroachievements import (
    RetroAchievementsAPIError,
    RetroAchievementsClient,
)

if TYPE_CHECKING:
    from savestate.config.http_resilience import ResilienceConfig
    from savestate.config.retroachievements import RetroAchievementsConfig


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def test_fetch_game_list_sends_credentials_and_filters(
    ra_config: RetroAchievementsConfig,
    snes_game_list: list[dict[str, object]],
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=snes_game_list)

    client = RetroAchievementsClient(
        config=ra_config, client_factory=_make_client_factory(handler)
    )
    rows = client.fetch_game_list(3)

    assert [row.id for row in rows] == [1448, 228, 9999]
    assert rows[0].num_achievements == 54
    (request,) = seen
    assert request.url.path == "/API/API_GetGameList.php"
    assert dict(request.url.params) == {
        "z": "player-one",
        "y": "secret-key",
        "i": "3",
        "f": "1",
    }


def test_all_games_flag(ra_config: RetroAchievementsConfig) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = RetroAchievementsClient(
        config=ra_config, client_factory=_make_client_factory(handler)
    )

    assert client.fetch_game_list(7, with_achievements_only=False) == []
    assert seen[0].url.params["f"] == "0"


def test_http_errors_do_not_leak_the_api_key(ra_config: RetroAchievementsConfig) -> None:
    client = RetroAchievementsClient(
        config=ra_config,
        client_factory=_make_client_factory(lambda _: httpx.Response(503)),
    )

    with pytest.raises(RetroAchievementsAPIError) as excinfo:
        client.fetch_game_list(3)

    assert "HTTPStatusError" in str(excinfo.value)
    assert "secret-key" not in str(excinfo.value)


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(200, content=b"Invalid API Key"), "not JSON"),
        (httpx.Response(200, json={"Error": "Unknown console"}), "Unexpected"),
        (httpx.Response(200, json=[{"Title": "No id"}]), "Malformed game list row"),
    ],
)
def test_bad_payloads_raise(
    ra_config: RetroAchievementsConfig, response: httpx.Response, message: str
) -> None:
    body = response.content

    client = RetroAchievementsClient(
        config=ra_config,
        client_factory=_make_client_factory(lambda _: httpx.Response(200, content=body)),
    )

    with pytest.raises(RetroAchievementsAPIError, match=message):
        client.fetch_game_list(3)
