from __future__ import annotations

from dataclasses import dataclass

import pytest

from savestate.domain.matching import best_match, score_candidates, token_overlap_score


@dataclass(frozen=True)
class Candidate:
    id: int
    title: str


def _title(candidate: Candidate) -> str:
    return candidate.title


def test_token_overlap_divides_by_larger_token_set() -> None:
    assert token_overlap_score("Mega Man X Legacy Collection", "Mega Man X Legacy Pack") == 0.8
    assert token_overlap_score("Mega Man Battle Network", "Mega Man Zero Collection") == 0.5


def test_token_overlap_is_zero_without_tokens() -> None:
    assert token_overlap_score("", "Halo") == 0.0
    assert token_overlap_score("™", "Halo") == 0.0


def test_token_overlap_ignores_case_and_annotations() -> None:
    assert token_overlap_score("Chrono Trigger (USA)", "chrono trigger") == 1.0


def test_numbered_sequels_score_high() -> None:
    # Why local fuzzy matching stays off unless configured.
    assert token_overlap_score("Call of Duty 2", "Call of Duty 3") == 0.75


def test_score_candidates_keeps_first_candidate_on_ties() -> None:
    candidates = [Candidate(1, "Sonic Adventure"), Candidate(2, "Sonic Adventure")]

    best = score_candidates("Sonic Adventure", candidates, title_of=_title)

    assert best is not None
    assert best.candidate.id == 1
    assert best.score == 1.0


def test_score_candidates_returns_none_for_no_candidates() -> None:
    assert score_candidates("Sonic", [], title_of=_title) is None


def test_score_candidates_applies_prepare_to_both_sides() -> None:
    candidates = [Candidate(1, "Zelda - Oracle of Ages"), Candidate(2, "Zelda")]

    best = score_candidates(
        "Zelda - Something",
        candidates,
        title_of=_title,
        prepare=lambda title: title.split(" - ")[0],
    )

    assert best is not None
    assert best.candidate.id == 1
    assert best.title == "Zelda - Oracle of Ages"


@pytest.mark.parametrize(
    ("query", "expected_id"),
    [
        ("Mega Man X Legacy Pack", 1),
        ("Mega Man Battle Network", None),
    ],
)
def test_best_match_respects_threshold(query: str, expected_id: int | None) -> None:
    candidates = [
        Candidate(1, "Mega Man X Legacy Collection"),
        Candidate(2, "Mega Man Zero Collection"),
    ]

    match = best_match(query, candidates, title_of=_title, threshold=0.72)

    assert (match.candidate.id if match else None) == expected_id
