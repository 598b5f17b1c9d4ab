"""Deterministic title transforms for search and comparison.

Three forms matter:

- ``demash``: re-insert word breaks in titles stored without spaces
  ("TigerWoodsPGATOUR07" -> "Tiger Woods PGATOUR 07").
- ``clean_for_search``: what we send to a metadata provider's search endpoint.
- ``comparison_key``: what two titles must share to count as the same title.

Everything here is pure and byte-for-byte reproducible.
"""

from __future__ import annotations

import re
from typing import Final

_PROTECT_OPEN: Final[str] = "\ue000"
_PROTECT_CLOSE: Final[str] = "\ue001"

_TWO_K_TOKEN = re.compile(r"\b2K(\d{1,2})\b", re.IGNORECASE)
_PROTECTED_TWO_K = re.compile(f"{_PROTECT_OPEN}(\\d{{1,2}}){_PROTECT_CLOSE}")
_SPLIT_TWO_K = re.compile(r"\b2 K (\d{1,2})\b", re.IGNORECASE)
_LOWER_UPPER = re.compile(r"([a-z])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z])([A-Z][a-z])")
_LETTER_DIGIT = re.compile(r"([A-Za-z])(\d)")
_DIGIT_LETTER = re.compile(r"(\d)([A-Za-z])")

_TRADEMARKS = re.compile("[™®©ⒸⓇ]")
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_BRACKETED = re.compile(r"\[[^\]]*\]")
_WHITESPACE = re.compile(r"\s+")

EDITION_WORDS: Final[tuple[str, ...]] = (
    "standard",
    "deluxe",
    "gold",
    "ultimate",
    "complete",
    "anniversary",
    "remastered",
    "definitive",
    "edition",
)
_EDITION_ALTERNATION = "|".join(EDITION_WORDS)
# Only a clause that starts with an edition word goes; "Batman: Arkham City" keeps its subtitle.
_EDITION_COLON_CLAUSE = re.compile(
    rf":\s*(?:{_EDITION_ALTERNATION})\b.*$",
    re.IGNORECASE,
)
_EDITION_DASH_TAIL = re.compile(
    rf"\s+-\s+[^-]*\b(?:{_EDITION_ALTERNATION}|game of the year|goty)\b[^-]*$",
    re.IGNORECASE,
)
_EDITION_SUFFIX = re.compile(
    rf"\s+(?:{_EDITION_ALTERNATION})(?:\s+(?:{_EDITION_ALTERNATION}))*\s+edition\s*$",
    re.IGNORECASE,
)
_NO_EDITION = re.compile(
    r"\b(?:edition|remastered|definitive|deluxe|complete|anniversary)\b.*$",
    re.IGNORECASE,
)

_APOSTROPHES = re.compile("['’‘`]")
_NON_WORD = re.compile(r"[^\w\s]|_")
_JR_POSSESSIVE = re.compile(r"\bJr\.?'?s\b", re.IGNORECASE)

_NON_GAME = re.compile(
    r"\b(?:amazon|netflix|hulu|spotify|iheartradio|movies|tv|groove|app|demo|trial|beta"
    r"|pack|add-on|dlc|soundtrack)\b|add\s+on|season\s+pass",
    re.IGNORECASE,
)


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def strip_trademarks(value: str) -> str:
    return collapse_whitespace(_TRADEMARKS.sub("", value))


def strip_annotations(value: str) -> str:
    """Drop ``(...)`` and ``[...]`` groups (regions, platforms, storefront notes)."""

    return _BRACKETED.sub(" ", _PARENTHETICAL.sub(" ", value))


def demash(title: str) -> str:
    # 2K9 / 2K10 style year tokens must survive the letter/digit split.
    protected = _TWO_K_TOKEN.sub(lambda m: f"{_PROTECT_OPEN}{m.group(1)}{_PROTECT_CLOSE}", title)
    spaced = _LOWER_UPPER.sub(r"\1 \2", protected)
    spaced = _ACRONYM_WORD.sub(r"\1 \2", spaced)
    spaced = _LETTER_DIGIT.sub(r"\1 \2", spaced)
    spaced = _DIGIT_LETTER.sub(r"\1 \2", spaced)
    spaced = _PROTECTED_TWO_K.sub(r"2K\1", spaced)
    # "NBA2K14" has no boundary before the 2, so it only gets rejoined here.
    return _SPLIT_TWO_K.sub(r"2K\1", spaced)


def clean_for_search(title: str) -> str:
    cleaned = strip_annotations(_TRADEMARKS.sub("", demash(title)))
    cleaned = _EDITION_COLON_CLAUSE.sub("", cleaned)
    cleaned = _EDITION_DASH_TAIL.sub("", cleaned)
    cleaned = _EDITION_SUFFIX.sub("", collapse_whitespace(cleaned))
    return collapse_whitespace(cleaned)


def comparison_key(title: str) -> str:
    key = title.lower().replace("&", " and ")
    key = _APOSTROPHES.sub("", key)
    key = strip_annotations(key)
    key = _NON_WORD.sub(" ", key)
    return collapse_whitespace(key)


def title_tokens(title: str) -> frozenset[str]:
    return frozenset(comparison_key(title).split())


def has_usable_title(title: str | None) -> bool:
    return bool(title) and bool(comparison_key(title or ""))


def normalize_canonical_title(title: str) -> str:
    """Form stored as ``Game.canonical_title``."""

    normalized = strip_trademarks(title.strip()).replace("’", "'")
    normalized = _JR_POSSESSIVE.sub("Jr's", normalized)
    return collapse_whitespace(normalized)


def search_variants(title: str) -> list[str]:
    """Search strings to try against a metadata provider, best first."""

    base = clean_for_search(title)
    if not base:
        return []
    variants = [base]
    before_colon = base.split(":")[0].strip()
    if before_colon:
        variants.append(before_colon)
    before_dash = base.split(" - ")[0].strip()
    if before_dash:
        variants.append(before_dash)
    no_edition = _NO_EDITION.sub("", base).strip()
    if no_edition:
        variants.append(no_edition)
    return list(dict.fromkeys(variants))


def is_likely_non_game(title: str) -> bool:
    """Storefront libraries also list apps, demos and soundtracks next to games."""

    return _NON_GAME.search(title.strip()) is not None


def game_title_key(title: str) -> str:
    """Key stored on ``Game.title_key`` and used for exact title lookups."""

    return comparison_key(normalize_canonical_title(title))
