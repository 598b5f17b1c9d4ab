"""Map catalog releases onto RetroAchievements game ids.

RetroAchievements has no title search worth using, so we pull the full game
list for the release's console and pick the best token-overlap match. Below
the threshold the release is simply left unmapped for a later pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from savestate.domain.matching import score_candidates
from savestate.domain.model import ExternalIdMapping, Source
from savestate.domain.ports import MetadataProviderError
from savestate.domain.titles import EDITION_WORDS, collapse_whitespace, strip_annotations

if TYPE_CHECKING:
    from uuid import UUID

    from savestate.domain.ports import CatalogEntry, CatalogListProvider, CatalogUnitOfWork

log = getLogger(__name__)

# First match wins, so more specific systems come before the ones they contain
# ("snes" before "nes", "game boy advance" before "game boy", "ps2" before "ps1").
_CONSOLE_PATTERNS: Final[tuple[tuple[re.Pattern[str], int], ...]] = tuple(
    (re.compile(pattern), console_id)
    for pattern, console_id in (
        (r"\bsnes\b|\bsuper nintendo\b|\bsuper nes\b", 3),
        (r"\bnes\b|\bnintendo entertainment system\b", 7),
        (r"\bn64\b|\bnintendo 64\b", 2),
        (r"\bgbc\b|\bgame boy color\b", 6),
        (r"\bgba\b|\bgame boy advance\b", 5),
        (r"\bgb\b|\bgame boy\b", 4),
        (r"\bgenesis\b|\bmega drive\b|\bmd\b", 1),
        (r"\bmastersystem\b|\bmaster system\b|\bsms\b", 11),
        (r"\bgame gear\b|\bgg\b", 15),
        (r"\bps2\b|\bplaystation 2\b", 21),
        (r"\bplaystation\b|\bps1\b|\bpsx\b", 12),
        (r"\bpc engine\b|\bturbografx\b|\btg16\b", 8),
        (r"\bneo geo pocket\b|\bngp\b", 14),
        (r"\blynx\b", 13),
        (r"\bvirtual boy\b", 28),
        (r"\bsaturn\b", 39),
        (r"\bdreamcast\b", 40),
    )
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
# "Sonic: Special Edition" loses its clause, "Zelda: Oracle of Seasons Limited Edition" does not.
_EDITION_CLAUSE = re.compile(
    rf":\s*(?:\w+\s+)?(?:{'|'.join(EDITION_WORDS)})\b.*", re.IGNORECASE
)
_DASH_TAIL = re.compile(r"\s+-\s+.*")
_MARKS = re.compile("[™®]")


def resolve_console_id(*labels: str | None) -> int | None:
    """Console id for a platform key and/or label such as ``ra-snes`` or "Game Boy Color"."""

    haystack = _NON_ALNUM.sub(" ", " ".join(label or "" for label in labels).lower()).strip()
    for pattern, console_id in _CONSOLE_PATTERNS:
        if pattern.search(haystack):
            return console_id
    return None


def normalize_title_for_retroachievements(title: str) -> str:
    cleaned = strip_annotations(title)
    cleaned = _EDITION_CLAUSE.sub("", cleaned)
    cleaned = _DASH_TAIL.sub("", cleaned)
    return collapse_whitespace(_MARKS.sub("", cleaned))


@dataclass(frozen=True, slots=True, kw_only=True)
class RetroAchievementsMapping:
    ok: bool
    game_id: str | None = None
    note: str | None = None
    confidence: float | None = None
    matched_title: str | None = None
    written: bool = False


def _entry_title(entry: CatalogEntry) -> str:
    return entry.title


class RetroAchievementsMapper:
    def __init__(
        self,
        uow: CatalogUnitOfWork,
        catalog: CatalogListProvider,
        *,
        threshold: float,
    ) -> None:
        self._uow = uow
        self._catalog = catalog
        self._threshold = threshold

    def map_release(self, release_id: UUID, *, dry_run: bool = False) -> RetroAchievementsMapping:
        repositories = self._uow.repositories
        existing = repositories.external_ids.for_release(
            release_id, source=Source.RETROACHIEVEMENTS
        )
        if existing:
            return RetroAchievementsMapping(
                ok=True, game_id=existing[0].external_id, note="Already mapped."
            )

        release = repositories.releases.get(release_id)
        if release is None:
            return RetroAchievementsMapping(ok=False, note="Release not found.")
        title = release.display_title.strip()
        if not title:
            return RetroAchievementsMapping(ok=False, note="Missing release title.")

        console_id = resolve_console_id(release.platform_key, release.platform_label)
        if console_id is None:
            label = release.platform_label or release.platform_key
            return RetroAchievementsMapping(
                ok=False, note=f"Could not resolve RetroAchievements system for {label!r}."
            )

        try:
            entries = self._catalog.list_games_for_system(console_id)
        except MetadataProviderError as exc:
            log.warning("RetroAchievements game list for console %s failed: %s", console_id, exc)
            return RetroAchievementsMapping(ok=False, note=f"Failed to fetch game list: {exc}")

        best = score_candidates(
            title,
            entries,
            title_of=_entry_title,
            prepare=normalize_title_for_retroachievements,
        )
        if best is None or not best.clears(self._threshold):
            return RetroAchievementsMapping(
                ok=True,
                note="No confident match.",
                confidence=best.score if best else 0.0,
                matched_title=best.title if best else None,
            )

        matched = best.candidate
        if dry_run:
            return RetroAchievementsMapping(
                ok=True,
                game_id=matched.id,
                note="Dry run.",
                confidence=best.score,
                matched_title=matched.title,
            )

        inserted = repositories.external_ids.insert_if_absent(
            ExternalIdMapping(
                release_id=release_id,
                source=Source.RETROACHIEVEMENTS,
                external_id=matched.id,
            )
        )
        self._uow.commit()
        current = repositories.external_ids.get(Source.RETROACHIEVEMENTS, matched.id)
        if current is not None and current.release_id != release_id:
            return RetroAchievementsMapping(
                ok=False,
                game_id=matched.id,
                note=(
                    f"RetroAchievements game {matched.id} is mapped to release "
                    f"{current.release_id}."
                ),
                confidence=best.score,
                matched_title=matched.title,
            )
        log.info(
            "Mapped release %s to RetroAchievements game %s (%.2f)",
            release_id,
            matched.id,
            best.score,
        )
        return RetroAchievementsMapping(
            ok=True,
            game_id=matched.id,
            confidence=best.score,
            matched_title=matched.title,
            written=inserted,
        )
