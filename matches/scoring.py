"""
Padel set and match validation.

A set is won 6-x with x <= 4, or 7-5 / 7-6. Anything else is either not
finished or impossible.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from django.core.exceptions import ValidationError

SETS_TO_WIN = {
    "best_of_3": 2,
    "best_of_5": 3,
    "single_set": 1,
}

SetScore = Tuple[int, int]


@dataclass(frozen=True)
class MatchOutcome:
    team1_sets: int
    team2_sets: int

    @property
    def team1_won(self) -> bool:
        return self.team1_sets > self.team2_sets

    @property
    def winner_sets(self) -> int:
        return max(self.team1_sets, self.team2_sets)

    @property
    def loser_sets(self) -> int:
        return min(self.team1_sets, self.team2_sets)


def validate_set(team1_games: int, team2_games: int, set_number: int = 1) -> None:
    if team1_games < 0 or team2_games < 0:
        raise ValidationError(f"Set {set_number}: Games cannot be negative")
    winner, loser = max(team1_games, team2_games), min(team1_games, team2_games)

    if winner > 7:
        raise ValidationError(f"Set {set_number}: Maximum games in a set is 7")
    if winner == loser == 6:
        raise ValidationError(f"Set {set_number}: Invalid score. At 6-6, the set should go to 7-6 or tiebreak")
    if winner < 6:
        raise ValidationError(f"Set {set_number}: Winner must have at least 6 games")
    if winner == 6 and loser == 5:
        raise ValidationError(f"Set {set_number}: At 6-5 the set is not finished; play on to 7-5 or 7-6")
    if winner == 7 and loser not in (5, 6):
        raise ValidationError(f"Set {set_number}: If winner has 7 games, loser must have 5 or 6")


def validate_match(sets: Sequence[SetScore], match_format: str) -> MatchOutcome:
    """
    Validate every set and the overall result; returns the set count per team.
    Raises ValidationError on the first problem found.
    """
    if not sets:
        raise ValidationError("Please enter at least one set score")
    try:
        needed = SETS_TO_WIN[match_format]
    except KeyError:
        raise ValidationError(f"Unknown match format: {match_format}")

    t1 = t2 = 0
    for i, (g1, g2) in enumerate(sets, start=1):
        if t1 >= needed or t2 >= needed:
            raise ValidationError(f"Set {i}: The match was already decided after set {i - 1}")
        validate_set(g1, g2, i)
        if g1 > g2:
            t1 += 1
        else:
            t2 += 1

    if t1 < needed and t2 < needed:
        raise ValidationError(f"Match incomplete: Someone must win {needed} sets")
    return MatchOutcome(team1_sets=t1, team2_sets=t2)


def parse_sets(rows: Iterable[Tuple[object, object]]) -> List[SetScore]:
    """Turn form rows into integer pairs, dropping rows left completely blank."""
    out: List[SetScore] = []
    for a, b in rows:
        if (a in (None, "")) and (b in (None, "")):
            continue
        if a in (None, "") or b in (None, ""):
            raise ValidationError(f"Set {len(out) + 1}: Enter games for both teams")
        try:
            out.append((int(a), int(b)))
        except (TypeError, ValueError):
            raise ValidationError(f"Set {len(out) + 1}: Games must be whole numbers")
    return out


def score_string(sets: Iterable[SetScore]) -> str:
    return ", ".join(f"{a}-{b}" for a, b in sets)
