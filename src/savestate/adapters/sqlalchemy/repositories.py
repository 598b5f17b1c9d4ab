"""Repository implementations backed by SQLAlchemy sessions.

Conditional writes go through ``INSERT .. ON CONFLICT`` so that a lost race
turns into a no-op or an upsert instead of an exception. Plain inserts that do
collide surface as ``DuplicateRowError`` at ``add`` time.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from savestate.adapters.sqlalchemy.mappings import (
    RELEASE_DEPENDENT_TABLES,
    external_id_mapping_table,
    game_table,
    portfolio_entry_table,
    release_enrichment_state_table,
    release_table,
    title_progress_table,
)
from savestate.domain.model import (
    CatalogHealth,
    ExternalIdMapping,
    Game,
    PortfolioStatus,
    Release,
    new_id,
    utcnow,
)
from savestate.domain.ports import DuplicateRowError
from savestate.domain.resolution.enrichment import PLACEHOLDER_COVER_MARKERS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import FromClause, Select, Table
    from sqlalchemy.orm import Session

    from savestate.domain.model import ReleaseMerge


class UnsupportedDialectError(RuntimeError):
    """Conditional inserts are only implemented for SQLite and PostgreSQL."""

    def __init__(self, dialect: str) -> None:
        super().__init__(f"Conditional inserts are not supported on {dialect!r}")
        self.dialect = dialect


def _insert_for(session: Session, table: Table) -> Any:
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(table)
    if dialect == "postgresql":
        return postgresql.insert(table)
    raise UnsupportedDialectError(dialect)


def _is_unique_violation(exc: IntegrityError) -> bool:
    original = exc.orig
    code = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if code is not None:
        return code == "23505"
    return "UNIQUE constraint failed" in str(original)


def _constraint_name(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def _flush(session: Session, description: str) -> None:
    """Flush pending writes, translating uniqueness violations.

    The session is unusable after a failed flush; callers roll back.
    """

    try:
        session.flush()
    except IntegrityError as exc:
        if not _is_unique_violation(exc):
            raise
        raise DuplicateRowError(
            f"{description} already exists", constraint=_constraint_name(exc)
        ) from exc


def _fresh[T](stmt: Select[tuple[T]]) -> Select[tuple[T]]:
    # Rows can change underneath us through Core statements or other writers.
    return stmt.execution_options(populate_existing=True)


class SqlAlchemyGameRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Game) -> None:
        self.session.add(entity)
        _flush(self.session, f"Game {entity.canonical_title!r}")

    def get(self, game_id: UUID) -> Game | None:
        stmt = _fresh(select(Game).where(game_table.c.id == game_id))
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_title_key(self, title_key: str, *, limit: int) -> Sequence[Game]:
        stmt = _fresh(
            select(Game)
            .where(game_table.c.title_key == title_key)
            .order_by(game_table.c.created_at, game_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def find_by_metadata_id(self, metadata_id: str) -> Game | None:
        stmt = _fresh(select(Game).where(game_table.c.metadata_id == metadata_id))
        return self.session.execute(stmt).scalar_one_or_none()

    def search_by_title_prefix(self, prefix: str, *, limit: int) -> Sequence[Game]:
        if not prefix:
            return []
        stmt = _fresh(
            select(Game)
            .where(game_table.c.title_key.startswith(prefix, autoescape=True))
            .order_by(game_table.c.created_at, game_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def save(self, game: Game) -> None:
        game.updated_at = utcnow()
        self.session.add(game)
        _flush(self.session, f"Game metadata id {game.metadata_id!r}")

    def delete(self, game_id: UUID) -> bool:
        result = self.session.execute(delete(game_table).where(game_table.c.id == game_id))
        return result.rowcount > 0

    def list_needing_metadata(self, *, limit: int) -> Sequence[Game]:
        """Games without a metadata id or without a real cover, oldest first."""

        stmt = _fresh(
            select(Game)
            .where(
                or_(
                    game_table.c.metadata_id.is_(None),
                    game_table.c.cover_url.is_(None),
                    game_table.c.cover_url == "",
                    *(
                        func.lower(game_table.c.cover_url).contains(marker)
                        for marker in PLACEHOLDER_COVER_MARKERS
                    ),
                )
            )
            .order_by(game_table.c.created_at, game_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def duplicate_title_groups(self, *, limit: int) -> Sequence[Sequence[Game]]:
        keys_stmt = (
            select(game_table.c.title_key)
            .group_by(game_table.c.title_key)
            .having(func.count() > 1)
            .order_by(game_table.c.title_key)
            .limit(limit)
        )
        keys = list(self.session.execute(keys_stmt).scalars())
        if not keys:
            return []
        games_stmt = _fresh(
            select(Game)
            .where(game_table.c.title_key.in_(keys))
            .order_by(game_table.c.title_key, game_table.c.created_at, game_table.c.id)
        )
        groups: dict[str, list[Game]] = defaultdict(list)
        for game in self.session.execute(games_stmt).scalars():
            groups[game.title_key].append(game)
        return [groups[key] for key in keys if len(groups[key]) > 1]


class SqlAlchemyReleaseRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Release) -> None:
        self.session.add(entity)
        _flush(self.session, f"Release ({entity.platform_key}, {entity.game_id})")

    def get(self, release_id: UUID) -> Release | None:
        stmt = _fresh(select(Release).where(release_table.c.id == release_id))
        return self.session.execute(stmt).scalar_one_or_none()

    def find_for_game(self, *, platform_key: str, game_id: UUID) -> Release | None:
        stmt = _fresh(
            select(Release)
            .where(release_table.c.platform_key == platform_key)
            .where(release_table.c.game_id == game_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_game(self, game_id: UUID) -> Sequence[Release]:
        stmt = _fresh(
            select(Release)
            .where(release_table.c.game_id == game_id)
            .order_by(release_table.c.created_at, release_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def move_to_game(self, release_id: UUID, game_id: UUID) -> None:
        stmt = (
            update(release_table)
            .where(release_table.c.id == release_id)
            .values(game_id=game_id, updated_at=utcnow())
        )
        try:
            self.session.execute(stmt)
        except IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise DuplicateRowError(
                f"Game {game_id} already has a release on that platform",
                constraint=_constraint_name(exc),
            ) from exc

    def fill_missing_covers(self, game_id: UUID, cover_url: str) -> int:
        stmt = (
            update(release_table)
            .where(release_table.c.game_id == game_id)
            .where(
                or_(
                    release_table.c.cover_url.is_(None),
                    release_table.c.cover_url == "",
                    *(
                        func.lower(release_table.c.cover_url).contains(marker)
                        for marker in PLACEHOLDER_COVER_MARKERS
                    ),
                )
            )
            .values(cover_url=cover_url, updated_at=utcnow())
        )
        return self.session.execute(stmt).rowcount

    def delete(self, release_id: UUID) -> bool:
        result = self.session.execute(
            delete(release_table).where(release_table.c.id == release_id)
        )
        return result.rowcount > 0


class SqlAlchemyExternalIdRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, source: str, external_id: str) -> ExternalIdMapping | None:
        stmt = _fresh(
            select(ExternalIdMapping)
            .where(external_id_mapping_table.c.source == source)
            .where(external_id_mapping_table.c.external_id == external_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def insert_if_absent(self, mapping: ExternalIdMapping) -> bool:
        stmt = (
            _insert_for(self.session, external_id_mapping_table)
            .values(
                source=mapping.source,
                external_id=mapping.external_id,
                release_id=mapping.release_id,
            )
            .on_conflict_do_nothing(index_elements=["source", "external_id"])
        )
        return self.session.execute(stmt).rowcount > 0

    def point_to(self, *, source: str, external_id: str, release_id: UUID) -> None:
        stmt = (
            _insert_for(self.session, external_id_mapping_table)
            .values(source=source, external_id=external_id, release_id=release_id)
            .on_conflict_do_update(
                index_elements=["source", "external_id"],
                set_={"release_id": release_id},
            )
        )
        self.session.execute(stmt)

    def for_release(
        self, release_id: UUID, *, source: str | None = None
    ) -> Sequence[ExternalIdMapping]:
        stmt = select(ExternalIdMapping).where(
            external_id_mapping_table.c.release_id == release_id
        )
        if source is not None:
            stmt = stmt.where(external_id_mapping_table.c.source == source)
        stmt = _fresh(
            stmt.order_by(
                external_id_mapping_table.c.source, external_id_mapping_table.c.external_id
            )
        )
        return list(self.session.execute(stmt).scalars())

    def delete_for_release(self, release_id: UUID) -> int:
        stmt = delete(external_id_mapping_table).where(
            external_id_mapping_table.c.release_id == release_id
        )
        return self.session.execute(stmt).rowcount


class SqlAlchemyReleaseDependentsRepository:
    """Moves per-user rows between releases.

    When the winner already holds a row with the same identity, the more
    recently updated row survives and the winner keeps ties.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def reassign(self, *, loser_id: UUID, winner_id: UUID) -> dict[str, int]:
        moved: dict[str, int] = {}
        for table, identity in RELEASE_DEPENDENT_TABLES:
            moved[table.name] = self._reassign_table(table, identity, loser_id, winner_id)
        return moved

    def _reassign_table(
        self,
        table: Table,
        identity: tuple[str, ...],
        loser_id: UUID,
        winner_id: UUID,
    ) -> int:
        rows = self.session.execute(
            select(table).where(table.c.release_id == loser_id)
        ).mappings().all()
        count = 0
        for row in rows:
            clash = self.session.execute(
                select(table.c.id, table.c.updated_at)
                .where(table.c.release_id == winner_id)
                .where(*(table.c[column] == row[column] for column in identity))
            ).first()
            if clash is not None:
                if not _is_newer(row["updated_at"], clash.updated_at):
                    self.session.execute(delete(table).where(table.c.id == row["id"]))
                    count += 1
                    continue
                self.session.execute(delete(table).where(table.c.id == clash.id))
            self.session.execute(
                update(table).where(table.c.id == row["id"]).values(release_id=winner_id)
            )
            count += 1
        return count

    def delete_release_state(self, release_id: UUID) -> int:
        stmt = delete(release_enrichment_state_table).where(
            release_enrichment_state_table.c.release_id == release_id
        )
        return self.session.execute(stmt).rowcount

    def record_merge(self, merge: ReleaseMerge) -> None:
        self.session.add(merge)


def _is_newer(candidate: datetime | None, current: datetime | None) -> bool:
    if candidate is None:
        return False
    if current is None:
        return True
    return candidate > current


class SqlAlchemyOwnershipRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def record_portfolio(
        self,
        *,
        user_id: UUID,
        release_id: UUID,
        playtime_minutes: int | None,
        last_played_at: datetime | None,
    ) -> None:
        now = utcnow()
        table = portfolio_entry_table
        stmt = (
            _insert_for(self.session, table)
            .values(
                id=new_id(),
                user_id=user_id,
                release_id=release_id,
                status=PortfolioStatus.OWNED,
                playtime_minutes=playtime_minutes,
                last_played_at=last_played_at,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "release_id"])
        )
        if self.session.execute(stmt).rowcount > 0:
            return

        current = self.session.execute(
            select(table.c.playtime_minutes, table.c.last_played_at)
            .where(table.c.user_id == user_id)
            .where(table.c.release_id == release_id)
        ).one()
        # Sources only ever report more playtime; never let a stale batch roll it back.
        self.session.execute(
            update(table)
            .where(table.c.user_id == user_id)
            .where(table.c.release_id == release_id)
            .values(
                playtime_minutes=_latest(current.playtime_minutes, playtime_minutes),
                last_played_at=_latest(current.last_played_at, last_played_at),
                updated_at=now,
            )
        )

    def record_progress(
        self,
        *,
        user_id: UUID,
        release_id: UUID,
        source: str,
        playtime_minutes: int | None,
        earned: int | None,
        total: int | None,
    ) -> None:
        now = utcnow()
        table = title_progress_table
        changes: dict[str, Any] = {"updated_at": now}
        for column, value in (
            ("playtime_minutes", playtime_minutes),
            ("earned", earned),
            ("total", total),
        ):
            if value is not None:
                changes[column] = value
        stmt = (
            _insert_for(self.session, table)
            .values(
                id=new_id(),
                user_id=user_id,
                release_id=release_id,
                source=source,
                playtime_minutes=playtime_minutes,
                earned=earned,
                total=total,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=["user_id", "release_id", "source"],
                set_=changes,
            )
        )
        self.session.execute(stmt)

    def touch_enrichment_state(self, *, release_id: UUID, source: str) -> None:
        table = release_enrichment_state_table
        now = utcnow()
        stmt = _insert_for(self.session, table).values(
            release_id=release_id,
            source=source,
            attempts=1,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["release_id"],
            set_={"source": source, "attempts": table.c.attempts + 1, "updated_at": now},
        )
        self.session.execute(stmt)


def _latest[T: (int, datetime)](current: T | None, reported: T | None) -> T | None:
    if current is None:
        return reported
    if reported is None:
        return current
    return max(current, reported)


class SqlAlchemyCatalogStatsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _count(self, table: FromClause, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(table)
        if criteria:
            stmt = stmt.where(*criteria)
        return int(self.session.execute(stmt).scalar_one())

    def health(self) -> CatalogHealth:
        has_release = select(release_table.c.id).where(
            release_table.c.game_id == game_table.c.id
        )
        duplicate_keys = (
            select(game_table.c.title_key)
            .group_by(game_table.c.title_key)
            .having(func.count() > 1)
            .subquery()
        )
        return CatalogHealth(
            games_total=self._count(game_table),
            games_with_metadata=self._count(game_table, game_table.c.metadata_id.is_not(None)),
            games_with_cover=self._count(
                game_table,
                game_table.c.cover_url.is_not(None),
                game_table.c.cover_url != "",
            ),
            games_without_releases=self._count(game_table, ~has_release.exists()),
            duplicate_title_groups=self._count(duplicate_keys),
            releases_total=self._count(release_table),
            releases_without_cover=self._count(
                release_table,
                or_(release_table.c.cover_url.is_(None), release_table.c.cover_url == ""),
            ),
            mappings_total=self._count(external_id_mapping_table),
        )
