"""
nhlscore: outcome and final-score probabilities for NHL games.

The package replays historical results into Elo-style team ratings, derives
recent scoring form, and expands expected goals into full score
distributions with fair odds and value-bet ranking.
"""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - exercised in packaging workflows
    __version__ = version("nhlscore")
except PackageNotFoundError:  # pragma: no cover - local editable installs
    __version__ = "0.0.0"

_EXPORTS = {
    # Engine components
    "RatingCalculator": ".engine.ratings",
    "ProbabilityConverter": ".engine.probabilities",
    "RecentFormAggregator": ".engine.form",
    "ExpectedGoalsEstimator": ".engine.expected_goals",
    "ScoreDistributionEngine": ".engine.distributions",
    "top_value_bets": ".engine.distributions",
    "MatchupPredictor": ".engine.pipeline",
    "RatingCache": ".engine.cache",
    # Records and options
    "GameResult": ".engine.models",
    "TeamRecentStats": ".engine.models",
    "ScoreProbability": ".engine.models",
    "DistributionOptions": ".engine.configuration",
    "InvalidConfiguration": ".engine.configuration",
    "load_engine_config": ".engine.configuration",
    # Utility functions
    "get_current_season": ".utils_date",
    "recent_seasons": ".utils_date",
    "get_config": ".config",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> object:  # pragma: no cover - thin lazy importer
    from importlib import import_module

    target_module = _EXPORTS.get(name)
    if not target_module:
        raise AttributeError(f"module {__name__} has no attribute {name}")
    module = import_module(target_module, __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(list(globals().keys()) + __all__)
