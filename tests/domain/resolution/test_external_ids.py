from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from savestate.domain.resolution import ExternalIdResolver, ResolutionError
from tests.helpers.catalog import seed_game, seed_release

if TYPE_CHECKING:
    from collections.abc import Callable

    from savestate.domain.ports import CatalogUnitOfWork


def test_resolve_and_link(uow_factory: Callable[[], CatalogUnitOfWork]) -> None:
    game = seed_game(uow_factory, "Hades")
    steam = seed_release(uow_factory, game, "steam")
    psn = seed_release(uow_factory, game, "psn")

    with uow_factory() as uow:
        resolver = ExternalIdResolver(uow.repositories.external_ids)
        assert resolver.resolve("steam", "1145360") is None

        first = resolver.link(source="steam", external_id="1145360", release_id=steam.id)
        # the first mapping stands; the caller learns where it points
        second = resolver.link(source="steam", external_id="1145360", release_id=psn.id)
        uow.commit()

    assert first == second == steam.id
    with uow_factory() as uow:
        assert ExternalIdResolver(uow.repositories.external_ids).resolve("steam", "1145360") == (
            steam.id
        )


class _VanishingMappings:
    def insert_if_absent(self, mapping: object) -> bool:
        del mapping
        return True

    def get(self, source: str, external_id: str) -> None:
        del source, external_id


def test_link_requires_a_visible_mapping() -> None:
    resolver = ExternalIdResolver(_VanishingMappings())  # type: ignore[arg-type]

    with pytest.raises(ResolutionError, match="vanished"):
        resolver.link(source="steam", external_id="1", release_id=None)  # type: ignore[arg-type]
