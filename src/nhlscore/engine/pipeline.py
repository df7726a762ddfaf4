"""End-to-end matchup predictions over a result history."""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import Any, Iterable, List, Mapping, Sequence

from .analytics import StakedBet, stake_value_bets
from .cache import Fingerprint, RatingCache, results_fingerprint, season_fingerprint
from .configuration import (
    DistributionOptions,
    EngineConfig,
    create_distribution_engine,
    create_expected_goals_estimator,
    create_form_aggregator,
    create_probability_converter,
    create_rating_calculator,
)
from .distributions import top_value_bets
from .models import GameResult, ScoreProbability, TeamRating, TeamRecentStats
from .probabilities import find_team_rating

logger = logging.getLogger(__name__)


class UnknownTeamError(KeyError):
    """Raised when a team abbreviation has no rating in the history."""

    def __init__(self, abbr: str) -> None:
        super().__init__(abbr)
        self.abbr = abbr

    def __str__(self) -> str:
        return f"team not found: {self.abbr}"


@dataclasses.dataclass(slots=True)
class OutcomePrediction:
    home_team: str
    away_team: str
    home_win_probability: float
    draw_probability: float
    away_win_probability: float
    min_home_odds: float
    min_away_odds: float
    home_rating: float
    away_rating: float


@dataclasses.dataclass(slots=True)
class ScorePrediction:
    home_team: str
    away_team: str
    lambda_home: float
    lambda_away: float
    home_stats: TeamRecentStats
    away_stats: TeamRecentStats
    top: List[ScoreProbability]
    distribution: List[ScoreProbability]
    stakes: List[StakedBet] = dataclasses.field(default_factory=list)


def _rounded_odds(probability: float) -> float:
    return round(1.0 / probability, 2) if probability > 0 else 0.0


class MatchupPredictor:
    """Wire the engine components together for one result history.

    Ratings are computed once per history and memoised in ``cache`` under
    the season fingerprint when ``seasons`` is given, otherwise under a
    fingerprint of the results themselves. The key also carries the rating
    constants and the reference date, so predictors with different settings
    can share one cache.
    """

    def __init__(
        self,
        results: Iterable[GameResult],
        *,
        config: EngineConfig | None = None,
        cache: RatingCache | None = None,
        seasons: Sequence[str] | None = None,
        reference_date: dt.date | None = None,
    ) -> None:
        self.results = list(results)
        self.config = config or EngineConfig()
        self.cache = cache if cache is not None else RatingCache()
        self.reference_date = reference_date
        self.calculator = create_rating_calculator(self.config)
        self.converter = create_probability_converter(self.config)
        self.form = create_form_aggregator(self.config)
        self.estimator = create_expected_goals_estimator(self.config)
        self.distribution = create_distribution_engine(self.config)
        self._key: Fingerprint = (
            season_fingerprint(seasons) if seasons else results_fingerprint(self.results)
        )

    def _cache_key(self, reference: dt.date) -> Fingerprint:
        settings = tuple(
            f"{name}={value!r}" for name, value in self.config.rating.model_dump().items()
        )
        return (*self._key, "rating", *settings, reference.isoformat())

    def ratings(self) -> List[TeamRating]:
        reference = self.reference_date or dt.date.today()
        return self.cache.get_or_compute(
            self._cache_key(reference), lambda: self.calculator.table(self.results, reference)
        )

    def _lookup(self, abbr: str) -> TeamRating:
        team = find_team_rating(abbr, self.ratings())
        if team is None:
            raise UnknownTeamError(abbr.strip().upper())
        return team

    def predict_outcome(self, home: str, away: str) -> OutcomePrediction:
        home_team = self._lookup(home)
        away_team = self._lookup(away)
        probs = self.converter.convert(home_team.rating, away_team.rating)
        return OutcomePrediction(
            home_team=home_team.abbr,
            away_team=away_team.abbr,
            home_win_probability=round(probs.home_win, 4),
            draw_probability=probs.draw,
            away_win_probability=round(probs.away_win, 4),
            min_home_odds=_rounded_odds(probs.home_win),
            min_away_odds=_rounded_odds(probs.away_win),
            home_rating=home_team.rating,
            away_rating=away_team.rating,
        )

    def predict_scores(
        self,
        home: str,
        away: str,
        *,
        market_odds: Mapping[str, float] | None = None,
        options: DistributionOptions | Mapping[str, Any] | None = None,
        top_n: int | None = None,
        home_special_teams: tuple[float | None, float | None] | None = None,
        away_special_teams: tuple[float | None, float | None] | None = None,
    ) -> ScorePrediction:
        """Score distribution and ranked bets for ``home`` hosting ``away``.

        Special-teams tuples are ``(power_play_pct, penalty_kill_pct)``.
        """

        home_team = self._lookup(home)
        away_team = self._lookup(away)
        home_stats = self.form.aggregate(home_team.abbr, self.results)
        away_stats = self.form.aggregate(away_team.abbr, self.results)
        if home_special_teams is not None:
            home_stats = home_stats.with_special_teams(*home_special_teams)
        if away_special_teams is not None:
            away_stats = away_stats.with_special_teams(*away_special_teams)

        expected = self.estimator.estimate(
            home_stats, away_stats, home_team.rating, away_team.rating
        )
        matrix = self.distribution.compute(
            expected.lambda_home, expected.lambda_away, options, market_odds
        )
        analytics = self.config.analytics
        top = top_value_bets(
            matrix,
            analytics.top_n if top_n is None else top_n,
            threshold=analytics.value_threshold,
        )
        stakes = (
            stake_value_bets(top, analytics.bankroll, divider=analytics.kelly_divider)
            if market_odds
            else []
        )
        logger.info(
            "Predicted %s vs %s: lambdas %.3f / %.3f, %d ranked bets",
            home_team.abbr,
            away_team.abbr,
            expected.lambda_home,
            expected.lambda_away,
            len(top),
        )
        return ScorePrediction(
            home_team=home_team.abbr,
            away_team=away_team.abbr,
            lambda_home=round(expected.lambda_home, 3),
            lambda_away=round(expected.lambda_away, 3),
            home_stats=home_stats,
            away_stats=away_stats,
            top=top,
            distribution=matrix[:100],
            stakes=stakes,
        )


__all__ = ["MatchupPredictor", "OutcomePrediction", "ScorePrediction", "UnknownTeamError"]
