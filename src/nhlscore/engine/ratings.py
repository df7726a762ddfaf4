"""Incremental Elo-style team ratings from a chronological result history."""

from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Dict, Iterable, List

from ..utils_date import days_between
from .models import GameResult, TeamRating

logger = logging.getLogger(__name__)

BASE_RATING = 1500.0
BASE_K = 20.0
HOME_ADVANTAGE = 60.0
TIME_SCALE_DAYS = 365.0
EXTRA_PERIOD_FACTOR = 0.75


def expected_home_score(home_effective: float, away_effective: float) -> float:
    """Logistic win expectation for the home side (base 10, scale 400)."""

    return 1.0 / (1.0 + 10.0 ** ((away_effective - home_effective) / 400.0))


def margin_multiplier(goal_diff: int, rating_diff: float) -> float:
    """Reward wide margins, damped as the pre-game rating gap grows."""

    goals = max(abs(goal_diff), 1)
    return math.log(goals + 1) * (2.2 / (abs(rating_diff) * 0.001 + 2.2))


def time_weight(days_ago: float, time_scale_days: float = TIME_SCALE_DAYS) -> float:
    """Close to 2 for recent games, decaying towards 1 for old ones."""

    return 1.0 + math.exp(-max(0.0, days_ago) / time_scale_days)


class RatingCalculator:
    """Folds an ordered sequence of results into per-team ratings.

    The calculator is stateless between calls: every :meth:`compute` starts
    from an empty rating map, seeds teams at ``base_rating`` on first
    appearance and applies one zero-sum update per game in the order given.
    Callers are responsible for chronological ordering; replaying the same
    games in a different order produces different ratings.
    """

    def __init__(
        self,
        base_rating: float = BASE_RATING,
        k_factor: float = BASE_K,
        home_advantage: float = HOME_ADVANTAGE,
        time_scale_days: float = TIME_SCALE_DAYS,
        extra_period_factor: float = EXTRA_PERIOD_FACTOR,
    ) -> None:
        self.base_rating = base_rating
        self.k_factor = k_factor
        self.home_advantage = home_advantage
        self.time_scale_days = time_scale_days
        self.extra_period_factor = extra_period_factor

    def compute(
        self, results: Iterable[GameResult], reference_date: dt.date | None = None
    ) -> Dict[int, float]:
        """Return ``team_id -> rating`` rounded to 2 dp, highest first."""

        return {row.team_id: row.rating for row in self.table(results, reference_date)}

    def table(
        self, results: Iterable[GameResult], reference_date: dt.date | None = None
    ) -> List[TeamRating]:
        """Return the rating table sorted by descending rating."""

        reference = reference_date or dt.date.today()
        ratings: Dict[int, float] = {}
        abbrs: Dict[int, str] = {}
        games = 0
        for result in results:
            self._apply(ratings, abbrs, result, reference)
            games += 1
        table = [
            TeamRating(team_id=team_id, abbr=abbrs[team_id], rating=round(value, 2))
            for team_id, value in ratings.items()
        ]
        table.sort(key=lambda row: row.rating, reverse=True)
        logger.debug("Replayed %d games into %d team ratings", games, len(table))
        return table

    def _ensure_team(
        self, ratings: Dict[int, float], abbrs: Dict[int, str], team_id: int, abbr: str
    ) -> float:
        if team_id not in ratings:
            ratings[team_id] = self.base_rating
            abbrs[team_id] = abbr
        return ratings[team_id]

    def _apply(
        self,
        ratings: Dict[int, float],
        abbrs: Dict[int, str],
        result: GameResult,
        reference: dt.date,
    ) -> None:
        home = self._ensure_team(ratings, abbrs, result.home_team_id, result.home_abbr)
        away = self._ensure_team(ratings, abbrs, result.away_team_id, result.away_abbr)

        expected_home = expected_home_score(home + self.home_advantage, away)

        if result.home_goals > result.away_goals:
            actual_home = 1.0
        else:
            # ties cannot occur in the league; both sides score 0 if one slips through
            actual_home = 0.0

        multiplier = margin_multiplier(result.home_goals - result.away_goals, home - away)
        weight = time_weight(days_between(result.date, reference), self.time_scale_days)
        ot_factor = self.extra_period_factor if result.decided_in_extra_period else 1.0
        k = self.k_factor * multiplier * weight * ot_factor

        delta = k * (actual_home - expected_home)
        ratings[result.home_team_id] = home + delta
        ratings[result.away_team_id] = away - delta


__all__ = [
    "BASE_RATING",
    "HOME_ADVANTAGE",
    "RatingCalculator",
    "expected_home_score",
    "margin_multiplier",
    "time_weight",
]
