"""Translate IGDB games into metadata hits."""

from __future__ import annotations

from datetime import UTC, datetime

from savestate.domain.ports import MetadataHit

from .schema import IgdbGame, IgdbInvolvedCompany


def normalize_cover_url(url: str | None) -> str | None:
    """Absolute ``https`` URL at cover size; IGDB hands out protocol-relative thumbnails."""

    if not url:
        return None
    absolute = f"https:{url}" if url.startswith("//") else url
    return absolute.replace("t_thumb", "t_cover_big")


def release_year(first_release_date: int | None) -> int | None:
    if first_release_date is None:
        return None
    return datetime.fromtimestamp(first_release_date, tz=UTC).year


def translate_game(game: IgdbGame, *, fallback_title: str) -> MetadataHit:
    companies = [entry for entry in game.involved_companies if entry.company is not None]
    developer = next((entry for entry in companies if entry.developer), None)
    if developer is None and companies:
        developer = companies[0]
    publisher = next((entry for entry in companies if entry.publisher), None)

    return MetadataHit(
        external_title_id=str(game.id),
        title=(game.name or "").strip() or fallback_title,
        cover_url=normalize_cover_url(game.cover.url if game.cover else None),
        summary=game.summary or None,
        genres=tuple(genre.name for genre in game.genres if genre.name),
        developer=_company_name(developer),
        publisher=_company_name(publisher),
        first_release_year=release_year(game.first_release_date),
    )


def _company_name(entry: IgdbInvolvedCompany | None) -> str | None:
    if entry is None or entry.company is None:
        return None
    return entry.company.name or None
