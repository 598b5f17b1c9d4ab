"""Authoritative ``(source, external_id) -> release`` lookups and links."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import ExternalIdMapping

from .errors import ResolutionError

if TYPE_CHECKING:
    from uuid import UUID

    from savestate.domain.ports import ExternalIdRepository

log = getLogger(__name__)


class ExternalIdResolver:
    def __init__(self, repository: ExternalIdRepository) -> None:
        self._repository = repository

    def resolve(self, source: str, external_id: str) -> UUID | None:
        mapping = self._repository.get(source, external_id)
        return mapping.release_id if mapping is not None else None

    def link(self, *, source: str, external_id: str, release_id: UUID) -> UUID:
        """Insert-or-ignore the mapping, then return whatever the table now says.

        A different answer than ``release_id`` means another writer mapped this
        external id first; their mapping stands.
        """

        inserted = self._repository.insert_if_absent(
            ExternalIdMapping(release_id=release_id, source=source, external_id=external_id)
        )
        current = self.resolve(source, external_id)
        if current is None:
            raise ResolutionError(f"Mapping {source}:{external_id} vanished after upsert")
        if not inserted and current != release_id:
            log.info(
                "Mapping %s:%s already points at release %s (wanted %s)",
                source,
                external_id,
                current,
                release_id,
            )
        return current
