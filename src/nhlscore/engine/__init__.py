"""Rating and scoring engine for NHL game predictions.

Data flows one way: ordered :class:`GameResult` records are folded into team
ratings by :class:`RatingCalculator`; ratings become outcome probabilities in
:class:`ProbabilityConverter` and, together with the form splits from
:class:`RecentFormAggregator`, expected goals in
:class:`ExpectedGoalsEstimator`. :class:`ScoreDistributionEngine` expands the
two scoring rates into a ranked final-score distribution.

Every component is a pure, synchronous computation over immutable inputs.
"""

from .analytics import KellyCriterion, StakedBet, stake_value_bets
from .cache import RatingCache, results_fingerprint, season_fingerprint
from .configuration import (
    DistributionOptions,
    EngineConfig,
    InvalidConfiguration,
    coerce_distribution_options,
    load_engine_config,
    validate_engine_config,
)
from .distributions import (
    ScoreDistributionEngine,
    annotate_market_odds,
    bivariate_poisson_pmf,
    negative_binomial_pmf,
    poisson_pmf,
    top_value_bets,
)
from .expected_goals import ExpectedGoalsEstimator
from .form import RecentFormAggregator
from .models import (
    ExpectedGoals,
    GameResult,
    OutcomeProbabilities,
    ScoreProbability,
    TeamRating,
    TeamRecentStats,
    build_game_results,
    ratings_to_frame,
    results_from_frame,
    sort_results,
)
from .pipeline import MatchupPredictor, OutcomePrediction, ScorePrediction, UnknownTeamError
from .probabilities import ProbabilityConverter, find_team_rating
from .ratings import RatingCalculator

__all__ = [
    "DistributionOptions",
    "EngineConfig",
    "ExpectedGoals",
    "ExpectedGoalsEstimator",
    "GameResult",
    "InvalidConfiguration",
    "KellyCriterion",
    "MatchupPredictor",
    "OutcomePrediction",
    "OutcomeProbabilities",
    "ProbabilityConverter",
    "RatingCache",
    "RatingCalculator",
    "RecentFormAggregator",
    "ScoreDistributionEngine",
    "ScorePrediction",
    "ScoreProbability",
    "StakedBet",
    "TeamRating",
    "TeamRecentStats",
    "UnknownTeamError",
    "annotate_market_odds",
    "bivariate_poisson_pmf",
    "build_game_results",
    "coerce_distribution_options",
    "find_team_rating",
    "load_engine_config",
    "negative_binomial_pmf",
    "poisson_pmf",
    "ratings_to_frame",
    "results_fingerprint",
    "results_from_frame",
    "season_fingerprint",
    "sort_results",
    "stake_value_bets",
    "top_value_bets",
    "validate_engine_config",
]
