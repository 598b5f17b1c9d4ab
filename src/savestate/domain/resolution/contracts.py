"""Value types shared by the resolution strategies and their callers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from uuid import UUID

    from savestate.domain.ports import MetadataHit


class ResolutionPath(StrEnum):
    """How a record found its game."""

    EXTERNAL_ID = "external_id"
    TITLE_KEY = "title_key"
    FUZZY_TITLE = "fuzzy_title"
    METADATA_SEARCH = "metadata_search"
    CREATED = "created"


class LookupStatus(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolutionRequest:
    source: str
    external_id: str
    title: str
    platform_key: str
    cover_url: str | None = None
    platform_label: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Found:
    game_id: UUID
    matched_by: ResolutionPath
    release_id: UUID | None = None
    confidence: float | None = None
    hint: MetadataHit | None = None
    status: Literal[LookupStatus.FOUND] = LookupStatus.FOUND


@dataclass(frozen=True, slots=True, kw_only=True)
class NotFound:
    """No match. ``hint`` carries provider data the create step can still use."""

    reason: str | None = None
    hint: MetadataHit | None = None
    status: Literal[LookupStatus.NOT_FOUND] = LookupStatus.NOT_FOUND


@dataclass(frozen=True, slots=True, kw_only=True)
class LookupFailed:
    reason: str
    error: Exception | None = None
    status: Literal[LookupStatus.FAILED] = LookupStatus.FAILED


type LookupOutcome = Found | NotFound | LookupFailed


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedRelease:
    game_id: UUID
    release_id: UUID
    matched_by: ResolutionPath
    game_created: bool = False
    release_created: bool = False
    merged_release_id: UUID | None = None

    @property
    def mapped_existing(self) -> bool:
        return self.matched_by is ResolutionPath.EXTERNAL_ID
