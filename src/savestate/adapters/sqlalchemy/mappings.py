"""SQLAlchemy mapping metadata for the catalog domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from savestate.domain.model import (
    AchievementUnlock,
    ExternalIdMapping,
    Game,
    MergeReason,
    PortfolioEntry,
    PortfolioStatus,
    Release,
    ReleaseEnrichmentState,
    ReleaseMerge,
    TitleProgress,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [str(item) for item in items]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Catalog spine ---------------------------------------------------------------

game_table = Table(
    "game",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("canonical_title", String, nullable=False),
    Column("title_key", String, nullable=False),
    Column("metadata_id", String, nullable=True, unique=True),
    Column("summary", Text, nullable=True),
    Column("genres", StringListType, nullable=False, default=list),
    Column("developer", String, nullable=True),
    Column("publisher", String, nullable=True),
    Column("first_release_year", Integer, nullable=True),
    Column("cover_url", String, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("ix_game_title_key", "title_key"),
)

release_table = Table(
    "release",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("game_id", UUIDColumnType, ForeignKey("game.id"), nullable=False),
    Column("platform_key", String, nullable=False),
    Column("display_title", String, nullable=False),
    Column("cover_url", String, nullable=True),
    Column("platform_label", String, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("platform_key", "game_id"),
    Index("ix_release_game_id", "game_id"),
)

external_id_mapping_table = Table(
    "external_id_mapping",
    mapper_registry.metadata,
    Column("source", String, primary_key=True),
    Column("external_id", String, primary_key=True),
    Column("release_id", UUIDColumnType, ForeignKey("release.id"), nullable=False),
    Index("ix_external_id_mapping_release_id", "release_id"),
)

# Rows hanging off a release ----------------------------------------------------

portfolio_entry_table = Table(
    "portfolio_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("user_id", UUIDColumnType, nullable=False),
    Column("release_id", UUIDColumnType, ForeignKey("release.id"), nullable=False),
    Column("status", Enum(PortfolioStatus, native_enum=False), nullable=False),
    Column("playtime_minutes", Integer, nullable=True),
    Column("last_played_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("user_id", "release_id"),
    Index("ix_portfolio_entry_release_id", "release_id"),
)

title_progress_table = Table(
    "title_progress",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("user_id", UUIDColumnType, nullable=False),
    Column("release_id", UUIDColumnType, ForeignKey("release.id"), nullable=False),
    Column("source", String, nullable=False),
    Column("playtime_minutes", Integer, nullable=True),
    Column("earned", Integer, nullable=True),
    Column("total", Integer, nullable=True),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("user_id", "release_id", "source"),
    Index("ix_title_progress_release_id", "release_id"),
)

achievement_unlock_table = Table(
    "achievement_unlock",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("user_id", UUIDColumnType, nullable=False),
    Column("release_id", UUIDColumnType, ForeignKey("release.id"), nullable=False),
    Column("achievement_id", String, nullable=False),
    Column("unlocked_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("user_id", "release_id", "achievement_id"),
    Index("ix_achievement_unlock_release_id", "release_id"),
)

release_enrichment_state_table = Table(
    "release_enrichment_state",
    mapper_registry.metadata,
    Column("release_id", UUIDColumnType, ForeignKey("release.id"), primary_key=True),
    Column("source", String, nullable=False),
    Column("attempts", Integer, nullable=False, default=0),
    Column("updated_at", UTCDateTime, nullable=False),
)

# The loser is gone once the merge finishes, so neither side is a foreign key.
release_merge_table = Table(
    "release_merge",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("winner_id", UUIDColumnType, nullable=False),
    Column("loser_id", UUIDColumnType, nullable=False),
    Column("reason", Enum(MergeReason, native_enum=False), nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_release_merge_loser_id", "loser_id"),
)

# Per-user tables a merge must carry over, with the columns (besides
# ``release_id``) that identify a row for one user.
RELEASE_DEPENDENT_TABLES: Final[tuple[tuple[Table, tuple[str, ...]], ...]] = (
    (portfolio_entry_table, ("user_id",)),
    (title_progress_table, ("user_id", "source")),
    (achievement_unlock_table, ("user_id", "achievement_id")),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Game, game_table)
    mapper_registry.map_imperatively(Release, release_table)
    mapper_registry.map_imperatively(ExternalIdMapping, external_id_mapping_table)
    mapper_registry.map_imperatively(PortfolioEntry, portfolio_entry_table)
    mapper_registry.map_imperatively(TitleProgress, title_progress_table)
    mapper_registry.map_imperatively(AchievementUnlock, achievement_unlock_table)
    mapper_registry.map_imperatively(ReleaseEnrichmentState, release_enrichment_state_table)
    mapper_registry.map_imperatively(ReleaseMerge, release_merge_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
