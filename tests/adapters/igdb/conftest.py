"""Shared fixtures for IGDB adapter tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from savestate.adapters.igdb.schema import IgdbGame
from savestate.config.http_resilience import ResilienceConfig
from savestate.config.igdb import DEFAULT_IGDB_BASE_URL, IgdbConfig

IgdbPayload = list[dict[str, object]]
FIXTURES = Path("tests/data/igdb")


@pytest.fixture
def witcher_payload() -> IgdbPayload:
    return json.loads((FIXTURES / "witcher_search.json").read_text())


@pytest.fixture
def witcher_games(witcher_payload: IgdbPayload) -> list[IgdbGame]:
    return [IgdbGame.model_validate(row) for row in witcher_payload]


@pytest.fixture
def igdb_config() -> IgdbConfig:
    return IgdbConfig(
        client_id="client-id",
        access_token="token",
        resilience=ResilienceConfig(name="igdb", base_url=DEFAULT_IGDB_BASE_URL, cache=None),
        search_limit=5,
    )
