"""RetroAchievements Web API response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class RetroAchievementsBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "RetroAchievements %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class RetroAchievementsGameListEntry(RetroAchievementsBaseModel):
    """One row of ``API_GetGameList.php``."""

    id: int = Field(alias="ID")
    title: str = Field(alias="Title")
    console_id: int | None = Field(default=None, alias="ConsoleID")
    console_name: str | None = Field(default=None, alias="ConsoleName")
    image_icon: str | None = Field(default=None, alias="ImageIcon")
    num_achievements: int | None = Field(default=None, alias="NumAchievements")
    points: int | None = Field(default=None, alias="Points")
    date_modified: str | None = Field(default=None, alias="DateModified")
