"""Fold a duplicate release into its survivor.

Steps run in a fixed order and commit one by one:

1. move per-user dependent rows to the winner
2. drop the loser's enrichment state
3. re-point the loser's external id mappings, then delete what is left
4. delete the loser release

The loser row is removed last, so a failure part way leaves its data
reachable, and every step is a reassign or an upsert, so running ``merge``
again from the top finishes the job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from savestate.domain.model import MergeReason, ReleaseMerge

from .errors import ResolutionError

if TYPE_CHECKING:
    from uuid import UUID

    from savestate.domain.ports import CatalogUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class MergeReport:
    winner_id: UUID
    loser_id: UUID
    moved: dict[str, int] = field(default_factory=dict[str, int])
    deleted_state_rows: int = 0
    repointed_mappings: int = 0
    deleted: bool = False


class ReleaseMerger:
    def __init__(self, uow: CatalogUnitOfWork) -> None:
        self._uow = uow

    def merge(
        self,
        winner_id: UUID,
        loser_id: UUID,
        *,
        reason: MergeReason = MergeReason.MANUAL,
    ) -> MergeReport:
        if winner_id == loser_id:
            raise ValueError("Cannot merge a release into itself")

        repositories = self._uow.repositories
        report = MergeReport(winner_id=winner_id, loser_id=loser_id)

        if repositories.releases.get(winner_id) is None:
            raise ResolutionError(f"Merge target release {winner_id} does not exist")
        if repositories.releases.get(loser_id) is None:
            log.info("Release %s already merged away; nothing to do", loser_id)
            return report

        report.moved = repositories.dependents.reassign(loser_id=loser_id, winner_id=winner_id)
        self._uow.commit()

        report.deleted_state_rows = repositories.dependents.delete_release_state(loser_id)
        self._uow.commit()

        for mapping in repositories.external_ids.for_release(loser_id):
            repositories.external_ids.point_to(
                source=mapping.source,
                external_id=mapping.external_id,
                release_id=winner_id,
            )
            report.repointed_mappings += 1
        repositories.external_ids.delete_for_release(loser_id)
        self._uow.commit()

        repositories.dependents.record_merge(
            ReleaseMerge(winner_id=winner_id, loser_id=loser_id, reason=reason)
        )
        report.deleted = repositories.releases.delete(loser_id)
        self._uow.commit()

        log.info(
            "Merged release %s into %s (%s): moved=%s, mappings=%s",
            loser_id,
            winner_id,
            reason,
            report.moved,
            report.repointed_mappings,
        )
        return report
