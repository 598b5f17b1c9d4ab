"""IGDB response schemas for the ``games`` endpoint."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class IgdbBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "IGDB %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class IgdbGenre(IgdbBaseModel):
    id: int
    name: str | None = None


class IgdbCompany(IgdbBaseModel):
    id: int
    name: str | None = None


class IgdbInvolvedCompany(IgdbBaseModel):
    id: int
    company: IgdbCompany | None = None
    developer: bool = False
    publisher: bool = False


class IgdbCover(IgdbBaseModel):
    id: int
    url: str | None = None


class IgdbGame(IgdbBaseModel):
    id: int
    name: str | None = None
    summary: str | None = None
    first_release_date: int | None = None  # unix seconds
    genres: list[IgdbGenre] = Field(default_factory=list[IgdbGenre])
    involved_companies: list[IgdbInvolvedCompany] = Field(
        default_factory=list[IgdbInvolvedCompany]
    )
    cover: IgdbCover | None = None
