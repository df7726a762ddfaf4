"""Recent scoring form with home/away splits."""

from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Iterable, List, Sequence

from ..utils_date import days_between
from .models import GameResult, TeamRecentStats

logger = logging.getLogger(__name__)

LOOKBACK_GAMES = 20
DECAY_DAYS = 21.0


def _weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    total_weight = sum(weights)
    if total_weight <= 0.0:
        return 0.0
    return sum(value * weight for value, weight in zip(values, weights)) / total_weight


class RecentFormAggregator:
    """Derive per-game goals for/against from a team's latest games.

    Home splits come from the team's last ``lookback_games`` home games and
    away splits from its last ``lookback_games`` road games. With time decay
    each game weighs ``exp(-days / decay_days)``, counting days back from the
    most recent game in either window. A team with no qualifying games gets
    zero-valued splits.
    """

    def __init__(
        self,
        lookback_games: int = LOOKBACK_GAMES,
        use_time_decay: bool = True,
        decay_days: float = DECAY_DAYS,
    ) -> None:
        self.lookback_games = lookback_games
        self.use_time_decay = use_time_decay
        self.decay_days = decay_days

    def aggregate(
        self,
        team_abbr: str,
        results: Iterable[GameResult],
        *,
        lookback_games: int | None = None,
        use_time_decay: bool | None = None,
        decay_days: float | None = None,
    ) -> TeamRecentStats:
        lookback = self.lookback_games if lookback_games is None else lookback_games
        decay = self.use_time_decay if use_time_decay is None else use_time_decay
        scale = self.decay_days if decay_days is None else decay_days

        abbr = team_abbr.strip().upper()
        home_games: List[GameResult] = []
        away_games: List[GameResult] = []
        for result in results:
            if result.home_abbr.upper() == abbr:
                home_games.append(result)
            elif result.away_abbr.upper() == abbr:
                away_games.append(result)

        recent_home = home_games[-lookback:] if lookback > 0 else []
        recent_away = away_games[-lookback:] if lookback > 0 else []

        window = [game.date for game in recent_home] + [game.date for game in recent_away]
        reference = max(window) if window else None
        home_weights = self._weights(recent_home, reference, decay, scale)
        away_weights = self._weights(recent_away, reference, decay, scale)

        stats = TeamRecentStats(
            abbr=abbr,
            home_goals_for_per_game=round(
                _weighted_mean([g.home_goals for g in recent_home], home_weights), 3
            ),
            home_goals_against_per_game=round(
                _weighted_mean([g.away_goals for g in recent_home], home_weights), 3
            ),
            away_goals_for_per_game=round(
                _weighted_mean([g.away_goals for g in recent_away], away_weights), 3
            ),
            away_goals_against_per_game=round(
                _weighted_mean([g.home_goals for g in recent_away], away_weights), 3
            ),
            games_considered=max(len(recent_home), len(recent_away)),
        )
        logger.debug(
            "Form for %s over %d home / %d away games: %s",
            abbr,
            len(recent_home),
            len(recent_away),
            stats,
        )
        return stats

    @staticmethod
    def _weights(
        games: Sequence[GameResult],
        reference: dt.date | None,
        use_time_decay: bool,
        decay_days: float,
    ) -> List[float]:
        if not use_time_decay or reference is None:
            return [1.0] * len(games)
        return [math.exp(-days_between(game.date, reference) / decay_days) for game in games]


__all__ = ["DECAY_DAYS", "LOOKBACK_GAMES", "RecentFormAggregator"]
