"""Tuning knobs for catalog identity resolution."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_env_var, int_env_var
from .errors import ConfigurationError

DEFAULT_CANDIDATE_WINDOW = 25
RETROACHIEVEMENTS_MATCH_THRESHOLD = 0.72


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Explicit settings handed to the resolver; nothing is read from globals later.

    ``local_fuzzy_threshold`` is off by default: token overlap alone cannot tell
    numbered sequels apart ("Call of Duty 2" vs "Call of Duty 3" scores 0.75).
    """

    candidate_window: int = DEFAULT_CANDIDATE_WINDOW
    local_fuzzy_threshold: float | None = None
    retroachievements_threshold: float = RETROACHIEVEMENTS_MATCH_THRESHOLD
    allow_title_correction: bool = False
    skip_non_games: bool = False

    def __post_init__(self) -> None:
        if self.candidate_window < 1:
            raise ConfigurationError("candidate_window must be at least 1")
        for name in ("local_fuzzy_threshold", "retroachievements_threshold"):
            value = getattr(self, name)
            if value is not None and not 0.0 < value <= 1.0:
                raise ConfigurationError(f"{name} must be in (0, 1], got {value}")


def get_resolver_config() -> ResolverConfig:
    return ResolverConfig(
        candidate_window=int_env_var("SAVESTATE_CANDIDATE_WINDOW", DEFAULT_CANDIDATE_WINDOW),
        local_fuzzy_threshold=float_env_var("SAVESTATE_FUZZY_THRESHOLD"),
    )
