"""Expected goals per side from recent form and rating differential."""

from __future__ import annotations

import logging

from .models import ExpectedGoals, TeamRecentStats

logger = logging.getLogger(__name__)

HOME_GOAL_ADVANTAGE = 0.28
# 400 rating points ~ half a goal
RATING_GOAL_SCALE = 0.00125
SPECIAL_TEAMS_SCALE = 1000.0
MINIMUM_LAMBDA = 0.05


def _preferred_split(preferred: float | None, other: float | None) -> float:
    """Use ``preferred`` unless it is zero or unset, else average what is known."""

    if preferred:
        return preferred
    known = [value for value in (preferred, other) if value is not None]
    if not known:
        return 0.0
    return sum(known) / len(known)


def _special_teams_bump(
    power_play_pct: float | None, penalty_kill_pct: float | None, scale: float
) -> float:
    if power_play_pct is None or penalty_kill_pct is None:
        return 0.0
    return (power_play_pct - penalty_kill_pct) / scale


class ExpectedGoalsEstimator:
    """Combine attack/defense splits with the rating gap into two lambdas.

    ``lambda_home`` averages the home side's home scoring with the visitor's
    road goals-against, adds a fixed home goal advantage and shifts by the
    rating gap; ``lambda_away`` mirrors it with the gap's sign flipped. Both
    are floored at ``minimum_lambda``.
    """

    def __init__(
        self,
        home_goal_advantage: float = HOME_GOAL_ADVANTAGE,
        rating_goal_scale: float = RATING_GOAL_SCALE,
        special_teams_scale: float = SPECIAL_TEAMS_SCALE,
        minimum_lambda: float = MINIMUM_LAMBDA,
    ) -> None:
        self.home_goal_advantage = home_goal_advantage
        self.rating_goal_scale = rating_goal_scale
        self.special_teams_scale = special_teams_scale
        self.minimum_lambda = minimum_lambda

    def estimate(
        self,
        home_stats: TeamRecentStats,
        away_stats: TeamRecentStats,
        home_rating: float,
        away_rating: float,
    ) -> ExpectedGoals:
        home_attack = _preferred_split(
            home_stats.home_goals_for_per_game, home_stats.away_goals_for_per_game
        )
        away_defense = _preferred_split(
            away_stats.away_goals_against_per_game, away_stats.home_goals_against_per_game
        )
        away_attack = _preferred_split(
            away_stats.away_goals_for_per_game, away_stats.home_goals_for_per_game
        )
        home_defense = _preferred_split(
            home_stats.home_goals_against_per_game, home_stats.away_goals_against_per_game
        )

        rating_shift = (home_rating - away_rating) * self.rating_goal_scale
        lambda_home = (home_attack + away_defense) / 2.0 + self.home_goal_advantage + rating_shift
        lambda_away = (away_attack + home_defense) / 2.0 - rating_shift

        lambda_home += _special_teams_bump(
            home_stats.power_play_pct, away_stats.penalty_kill_pct, self.special_teams_scale
        )
        lambda_away += _special_teams_bump(
            away_stats.power_play_pct, home_stats.penalty_kill_pct, self.special_teams_scale
        )

        expected = ExpectedGoals(
            lambda_home=max(self.minimum_lambda, lambda_home),
            lambda_away=max(self.minimum_lambda, lambda_away),
        )
        logger.debug(
            "Expected goals %s vs %s -> %.3f / %.3f",
            home_stats.abbr,
            away_stats.abbr,
            expected.lambda_home,
            expected.lambda_away,
        )
        return expected


__all__ = [
    "ExpectedGoalsEstimator",
    "HOME_GOAL_ADVANTAGE",
    "MINIMUM_LAMBDA",
    "RATING_GOAL_SCALE",
]
