"""Rating differential to outcome probabilities."""

from __future__ import annotations

from typing import Sequence

from .models import OutcomeProbabilities, TeamRating
from .ratings import HOME_ADVANTAGE, expected_home_score


class ProbabilityConverter:
    """Map two ratings to a home/away/draw distribution.

    Games are always decided (overtime and shootout), so ``draw`` is 0 and
    the two win probabilities sum to 1. Non-finite ratings propagate as NaN.
    """

    def __init__(self, home_advantage: float = HOME_ADVANTAGE) -> None:
        self.home_advantage = home_advantage

    def convert(
        self,
        home_rating: float,
        away_rating: float,
        home_advantage: float | None = None,
    ) -> OutcomeProbabilities:
        bonus = self.home_advantage if home_advantage is None else home_advantage
        home_win = expected_home_score(home_rating + bonus, away_rating)
        return OutcomeProbabilities(home_win=home_win, away_win=1.0 - home_win, draw=0.0)


def find_team_rating(abbr: str, table: Sequence[TeamRating]) -> TeamRating | None:
    """Case-insensitive lookup of a team in a rating table."""

    wanted = abbr.strip().upper()
    for row in table:
        if row.abbr.upper() == wanted:
            return row
    return None


__all__ = ["ProbabilityConverter", "find_team_rating"]
