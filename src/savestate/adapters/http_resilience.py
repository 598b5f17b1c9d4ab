"""Async HTTP client shared by the metadata adapters.

Every request goes through the retry transport and, when configured, the rate
limiter and a hishel response cache. Query strings are never logged because
RetroAchievements puts the API key there.
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import RetryTransport

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import HeaderTypes, QueryParamTypes, RequestContent

    from savestate.config.http_resilience import CacheConfig, ResilienceConfig, ShouldCacheHook

log = getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    content: RequestContent | None
    params: QueryParamTypes | None
    headers: HeaderTypes | None


class ResilientClient:
    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        self._client = _build_http_client(config)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self, method: str, url: str, **kwargs: Unpack[RequestOptions]
    ) -> httpx.Response:
        if self._limiter is None:
            response = await self._client.request(method, url, **kwargs)
        else:
            async with self._limiter:
                response = await self._client.request(method, url, **kwargs)
        log.debug(
            "%s %s %s -> %s",
            self.config.name,
            method,
            response.request.url.path,
            response.status_code,
        )
        return response

    async def get(self, url: str, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


def _build_http_client(config: ResilienceConfig) -> httpx.AsyncClient:
    transport = RetryTransport(retry=config.retry.build())
    headers = dict(config.default_headers) if config.default_headers else None
    event_hooks = {"response": list(config.response_hooks)} if config.response_hooks else None
    base_url = config.base_url or ""

    storage, policy = _build_cache_components(config.cache)
    if storage is None:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=config.timeout_seconds,
            transport=transport,
            headers=headers,
            event_hooks=event_hooks,
        )
    return AsyncCacheClient(
        base_url=base_url,
        timeout=config.timeout_seconds,
        transport=transport,
        headers=headers,
        event_hooks=event_hooks,
        storage=storage,
        policy=policy,
    )


class _ShouldCacheResponseFilter(BaseFilter[HishelCacheResponse]):
    """Keep a response only if the predicate accepts its decoded JSON body.

    RetroAchievements answers some bad requests with HTTP 200 and an error
    object; those must not be cached for a week.
    """

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return True
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return True
        return bool(self._predicate(payload))


def _build_cache_components(
    config: CacheConfig | None,
) -> tuple[AsyncSqliteStorage | None, FilterPolicy | None]:
    if config is None or not config.enabled:
        return None, None

    match config.backend:
        case "memory":
            database_path = ":memory:"
        case "sqlite":
            if config.sqlite_path is None:
                raise ValueError("sqlite cache backend needs a sqlite_path")
            database_path = config.sqlite_path
        case other:
            raise ValueError(f"Unsupported cache backend: {other}")

    storage = AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )

    # Without a filter policy hishel follows the upstream cache headers.
    if config.should_cache is not None:
        return storage, FilterPolicy(
            response_filters=[_ShouldCacheResponseFilter(config.should_cache)]
        )
    if config.cache_all:
        return storage, FilterPolicy()
    return storage, None
