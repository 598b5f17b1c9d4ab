"""IGDB configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import first_env_var
from .errors import MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_IGDB_BASE_URL = "https://api.igdb.com/v4"


@dataclass(frozen=True, slots=True)
class IgdbConfig:
    client_id: str
    access_token: str
    resilience: ResilienceConfig
    search_limit: int = 10


def get_igdb_config() -> IgdbConfig:
    client_id = first_env_var("IGDB_CLIENT_ID", "TWITCH_CLIENT_ID")
    access_token = first_env_var("IGDB_ACCESS_TOKEN", "TWITCH_APP_ACCESS_TOKEN")
    missing = [
        name
        for name, value in (
            ("IGDB_CLIENT_ID", client_id),
            ("IGDB_ACCESS_TOKEN", access_token),
        )
        if value is None
    ]
    if client_id is None or access_token is None:
        raise MissingConfigurationError(f"Missing configuration for: {', '.join(missing)}")

    resilience = ResilienceConfig(
        name="igdb",
        base_url=DEFAULT_IGDB_BASE_URL,
        ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
        retry=RetryPolicy(total=4),
        cache=None,
        default_headers={
            "Client-ID": client_id,
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        },
    )
    return IgdbConfig(client_id=client_id, access_token=access_token, resilience=resilience)
