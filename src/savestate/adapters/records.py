"""JSON-lines files of external ownership records.

One object per line::

    {"source": "steam", "external_id": 1000, "title": "Game 1", "playtime_minutes": 42}

``platform_key`` defaults to the source for storefronts that are their own
platform. Steam rows go through the Steam fallbacks (placeholder title and
header image).
"""

from __future__ import annotations

from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from savestate.domain.model import Platform, Source
from savestate.domain.sync import ExternalRecord, steam_record

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

log = getLogger(__name__)

_SELF_PLATFORMED = frozenset(platform.value for platform in Platform)


class RecordFileError(ValueError):
    """A line of a records file could not be read as a record."""

    def __init__(self, message: str, *, line_number: int) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


class ExternalRecordLine(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    source: str
    external_id: str
    title: str | None = None
    platform_key: str | None = None
    platform_label: str | None = None
    cover_url: str | None = None
    user_id: UUID | None = None
    playtime_minutes: int | None = None
    last_played_at: datetime | None = None
    earned: int | None = None
    total: int | None = None

    @field_validator("external_id", mode="before")
    @classmethod
    def _stringify_external_id(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("source", "external_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be blank")
        return value

    def to_record(self, *, default_user_id: UUID | None = None) -> ExternalRecord:
        user_id = self.user_id or default_user_id
        if self.source == Source.STEAM and self.platform_key in (None, Platform.STEAM):
            base = steam_record(
                self.external_id,
                self.title,
                user_id=user_id,
                playtime_minutes=self.playtime_minutes,
                last_played_at=self.last_played_at,
            )
            return ExternalRecord(
                source=base.source,
                external_id=base.external_id,
                title=base.title,
                platform_key=base.platform_key,
                platform_label=self.platform_label or base.platform_label,
                cover_url=self.cover_url or base.cover_url,
                user_id=user_id,
                playtime_minutes=self.playtime_minutes,
                last_played_at=self.last_played_at,
                earned=self.earned,
                total=self.total,
            )

        platform_key = self.platform_key
        if platform_key is None:
            if self.source not in _SELF_PLATFORMED:
                raise ValueError(f"platform_key is required for source {self.source!r}")
            platform_key = self.source
        return ExternalRecord(
            source=self.source,
            external_id=self.external_id,
            title=self.title,
            platform_key=platform_key,
            platform_label=self.platform_label,
            cover_url=self.cover_url,
            user_id=user_id,
            playtime_minutes=self.playtime_minutes,
            last_played_at=self.last_played_at,
            earned=self.earned,
            total=self.total,
        )


def parse_record_lines(
    lines: Iterable[str], *, default_user_id: UUID | None = None
) -> Iterator[ExternalRecord]:
    """Yield records lazily; blank lines and ``#`` comments are skipped."""

    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            parsed = ExternalRecordLine.model_validate_json(line)
            record = parsed.to_record(default_user_id=default_user_id)
        except ValueError as exc:
            # pydantic's ValidationError is a ValueError too
            raise RecordFileError(str(exc), line_number=line_number) from exc
        yield record


def read_records(path: Path, *, default_user_id: UUID | None = None) -> list[ExternalRecord]:
    """Read and validate a whole file up front so a bad line aborts before any write."""

    with path.open(encoding="utf-8") as handle:
        records = list(parse_record_lines(handle, default_user_id=default_user_id))
    log.info("Read %s records from %s", len(records), path)
    return records
