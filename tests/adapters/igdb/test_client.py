from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from dataclasses import replace
from typing import TYPE_CHECKING

import httpx
import pytest

from savestate.adapters.http_resilience import ResilientClient
from savestate.adapters.igdb.client import IgdbAPIError, IgdbClient, id_query, search_query, slug_query

if TYPE_CHECKING:
    from savestate.config.http_resilience import ResilienceConfig
    from savestate.config.igdb import IgdbConfig

    from tests.adapters.igdb.conftest import IgdbPayload


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            headers=dict(resilience.default_headers or {}),
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def test_queries_are_apicalypse_bodies() -> None:
    assert search_query('Halo "Reach"', limit=3).startswith('search "Halo Reach"; fields id,name,')
    assert search_query("Halo", limit=3).endswith("; limit 3;")
    assert slug_query("halo-reach").startswith('where slug = "halo-reach"; fields ')
    assert id_query(1942).startswith("where id = 1942; fields ")
    assert id_query(1942).endswith("; limit 1;")


def test_search_games_posts_query(
    igdb_config: IgdbConfig, witcher_payload: IgdbPayload
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=witcher_payload)

    client = IgdbClient(config=igdb_config, client_factory=_make_client_factory(handler))
    games = client.search_games("Witcher 3")

    assert [game.id for game in games] == [1942, 22439]
    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/v4/games"
    assert request.headers["Content-Type"] == "text/plain"
    assert request.content.decode() == search_query("Witcher 3", limit=5)


def test_empty_body_is_no_games(igdb_config: IgdbConfig) -> None:
    client = IgdbClient(
        config=igdb_config,
        client_factory=_make_client_factory(lambda _: httpx.Response(200, content=b"")),
    )

    assert client.games_by_slug("nothing-here") == []


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(401, json={"message": "Authorization Failure"}), "request failed"),
        (httpx.Response(200, content=b"<html>"), "not JSON"),
        (httpx.Response(200, json={"id": 1}), "Unexpected IGDB response"),
        (httpx.Response(200, json=[{"name": "no id"}]), "Malformed IGDB game row"),
    ],
)
def test_failures_raise_api_error(
    igdb_config: IgdbConfig, response: httpx.Response, message: str
) -> None:
    body = response.content
    status = response.status_code

    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=body)

    client = IgdbClient(config=igdb_config, client_factory=_make_client_factory(handler))

    with pytest.raises(IgdbAPIError, match=message):
        client.search_games("Halo")


def test_missing_base_url_is_an_error(igdb_config: IgdbConfig) -> None:
    config = replace(igdb_config, resilience=replace(igdb_config.resilience, base_url=None))

    with pytest.raises(IgdbAPIError, match="base_url"):
        IgdbClient(config=config).search_games("Halo")


def test_games_by_id_posts_id_query(
    igdb_config: IgdbConfig, witcher_payload: IgdbPayload
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=witcher_payload[:1])

    client = IgdbClient(config=igdb_config, client_factory=_make_client_factory(handler))
    games = client.games_by_id(1942)

    assert [game.id for game in games] == [1942]
    (request,) = seen
    assert request.content.decode() == id_query(1942)
