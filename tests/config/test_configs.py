from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from savestate.config import (
    ConfigurationError,
    MissingConfigurationError,
    ResolverConfig,
    get_database_config,
    get_igdb_config,
    get_resolver_config,
    get_retroachievements_config,
    get_storage_config,
)
from savestate.config.retroachievements import GAME_LIST_CACHE_TTL_SECONDS

if TYPE_CHECKING:
    from pathlib import Path


def test_resolver_defaults() -> None:
    config = ResolverConfig()

    assert config.local_fuzzy_threshold is None
    assert config.allow_title_correction is False
    assert config.retroachievements_threshold == 0.72


@pytest.mark.parametrize(
    "kwargs",
    [
        {"candidate_window": 0},
        {"local_fuzzy_threshold": 0.0},
        {"local_fuzzy_threshold": 1.5},
        {"retroachievements_threshold": -0.1},
    ],
)
def test_resolver_rejects_bad_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(ConfigurationError):
        ResolverConfig(**kwargs)  # type: ignore[arg-type]


def test_resolver_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAVESTATE_CANDIDATE_WINDOW", "10")
    monkeypatch.setenv("SAVESTATE_FUZZY_THRESHOLD", "0.8")

    config = get_resolver_config()

    assert config.candidate_window == 10
    assert config.local_fuzzy_threshold == 0.8


def test_igdb_config_accepts_twitch_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IGDB_CLIENT_ID", raising=False)
    monkeypatch.delenv("IGDB_ACCESS_TOKEN", raising=False)
    monkeypatch.setenv("TWITCH_CLIENT_ID", "twitch-client")
    monkeypatch.setenv("TWITCH_APP_ACCESS_TOKEN", "twitch-token")

    config = get_igdb_config()

    assert config.client_id == "twitch-client"
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Authorization"] == "Bearer twitch-token"
    assert config.resilience.cache is None


def test_igdb_config_reports_missing_values(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("IGDB_CLIENT_ID", "TWITCH_CLIENT_ID", "IGDB_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TWITCH_APP_ACCESS_TOKEN", "token")

    with pytest.raises(MissingConfigurationError, match="IGDB_CLIENT_ID"):
        get_igdb_config()


def test_retroachievements_config_caches_game_lists(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("RA_USERNAME", "player-one")
    monkeypatch.setenv("RA_WEB_API_KEY", "secret-key")
    monkeypatch.setenv("SAVESTATE_DATA_DIR", str(tmp_path))

    config = get_retroachievements_config()

    cache = config.resilience.cache
    assert cache is not None
    assert cache.backend == "sqlite"
    assert cache.cache_all is True
    assert cache.should_cache is not None
    assert cache.should_cache([{"ID": 1}]) is True
    assert cache.should_cache({"Error": "Unknown console"}) is False
    assert cache.default_ttl_seconds == GAME_LIST_CACHE_TTL_SECONDS
    assert cache.sqlite_path == str(tmp_path.resolve() / "http_cache.db")


def test_database_uri_prefers_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://catalog@db/catalog")
    assert get_database_config().uri == "postgresql+psycopg://catalog@db/catalog"

    monkeypatch.delenv("DATABASE_URI")
    monkeypatch.setenv("SAVESTATE_DATA_DIR", str(tmp_path / "data"))
    assert get_database_config().uri == (
        f"sqlite+pysqlite:///{tmp_path.resolve() / 'data' / 'savestate.db'}"
    )
    assert get_storage_config().database_path(ensure=False).parent.exists()
