"""Token-overlap title similarity.

The score is ``|A ∩ B| / max(|A|, |B|)`` over comparison-key tokens. Dividing by
the larger set (rather than the union) keeps a short canonical title from being
punished too hard against a longer, noisier one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .titles import title_tokens

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


def token_overlap_score(left: str, right: str) -> float:
    left_tokens = title_tokens(left)
    right_tokens = title_tokens(right)
    if not left_tokens or not right_tokens:
        return 0.0
    shared = len(left_tokens & right_tokens)
    return shared / max(len(left_tokens), len(right_tokens))


@dataclass(frozen=True, slots=True)
class ScoredMatch[T]:
    candidate: T
    title: str
    score: float

    def clears(self, threshold: float) -> bool:
        return self.score >= threshold


def score_candidates[T](
    query: str,
    candidates: Iterable[T],
    *,
    title_of: Callable[[T], str],
    prepare: Callable[[str], str] | None = None,
) -> ScoredMatch[T] | None:
    """Return the highest scoring candidate, whatever its score.

    Ties keep the candidate seen first; provider order is the only ranking
    signal we have and we do not read anything else into it.
    """

    prepared_query = prepare(query) if prepare else query
    best: ScoredMatch[T] | None = None
    for candidate in candidates:
        title = title_of(candidate)
        score = token_overlap_score(prepared_query, prepare(title) if prepare else title)
        if best is None or score > best.score:
            best = ScoredMatch(candidate=candidate, title=title, score=score)
    return best


def best_match[T](
    query: str,
    candidates: Iterable[T],
    *,
    title_of: Callable[[T], str],
    threshold: float,
    prepare: Callable[[str], str] | None = None,
) -> ScoredMatch[T] | None:
    """Best candidate if it clears ``threshold``; below threshold is a plain miss."""

    best = score_candidates(query, candidates, title_of=title_of, prepare=prepare)
    if best is None or not best.clears(threshold):
        return None
    return best
