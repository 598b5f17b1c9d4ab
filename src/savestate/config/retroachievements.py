"""RetroAchievements configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import StorageConfig, get_storage_config

DEFAULT_RETROACHIEVEMENTS_BASE_URL = "https://retroachievements.org/API"
GAME_LIST_CACHE_TTL_SECONDS = 7 * 24 * 60 * 60


def _is_game_list(payload: object) -> bool:
    # Error payloads arrive as HTTP 200 objects and must not be cached.
    return isinstance(payload, list)


@dataclass(frozen=True, slots=True)
class RetroAchievementsConfig:
    username: str
    api_key: str
    resilience: ResilienceConfig


def get_retroachievements_config(
    *, storage: StorageConfig | None = None
) -> RetroAchievementsConfig:
    values = require_env_vars(("RA_USERNAME", "RA_WEB_API_KEY"))
    storage_config = storage or get_storage_config()

    resilience = ResilienceConfig(
        name="retroachievements",
        base_url=DEFAULT_RETROACHIEVEMENTS_BASE_URL,
        ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        # Game lists change rarely; a week-old copy is good enough for matching.
        cache=CacheConfig(
            backend="sqlite",
            sqlite_path=str(storage_config.http_cache_path()),
            default_ttl_seconds=GAME_LIST_CACHE_TTL_SECONDS,
            cache_all=True,
            should_cache=_is_game_list,
        ),
    )
    return RetroAchievementsConfig(
        username=values["RA_USERNAME"],
        api_key=values["RA_WEB_API_KEY"],
        resilience=resilience,
    )
