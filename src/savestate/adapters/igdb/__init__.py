"""IGDB metadata adapter."""

from __future__ import annotations

from .client import IgdbAPIError, IgdbClient
from .provider import IgdbMetadataSearch, slugify
from .translator import normalize_cover_url, translate_game

__all__ = [
    "IgdbAPIError",
    "IgdbClient",
    "IgdbMetadataSearch",
    "normalize_cover_url",
    "slugify",
    "translate_game",
]
