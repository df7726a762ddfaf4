"""Core records exchanged between the engine components."""

from __future__ import annotations

import dataclasses
import datetime as dt
import math
from typing import (
    Iterable,
    List,
    Mapping,
    Sequence,
    SupportsIndex,
    SupportsInt,
)

import polars as pl

from ..utils_date import parse_game_date

# ---------------------------------------------------------------------------
# Game and team primitives
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class GameResult:
    """A completed game as delivered by the schedule collaborator."""

    id: int
    date: dt.date
    home_team_id: int
    away_team_id: int
    home_abbr: str
    away_abbr: str
    home_goals: int
    away_goals: int
    decided_in_extra_period: bool = False
    season: str = ""


@dataclasses.dataclass(frozen=True, slots=True)
class TeamRating:
    """Final rating of one team after replaying a result history."""

    team_id: int
    abbr: str
    rating: float


@dataclasses.dataclass(frozen=True, slots=True)
class TeamRecentStats:
    """Per-game scoring splits derived from a team's recent games.

    ``power_play_pct`` and ``penalty_kill_pct`` are percentages (0-100).
    ``None`` means the rate is unknown and the special-teams adjustment is
    skipped.
    """

    abbr: str
    home_goals_for_per_game: float = 0.0
    home_goals_against_per_game: float = 0.0
    away_goals_for_per_game: float = 0.0
    away_goals_against_per_game: float = 0.0
    games_considered: int = 0
    power_play_pct: float | None = None
    penalty_kill_pct: float | None = None

    def with_special_teams(
        self, power_play_pct: float | None, penalty_kill_pct: float | None
    ) -> "TeamRecentStats":
        return dataclasses.replace(
            self, power_play_pct=power_play_pct, penalty_kill_pct=penalty_kill_pct
        )


def fair_odds(probability: float) -> float:
    """Breakeven decimal price for ``probability``; infinite at zero."""

    if probability <= 0.0:
        return math.inf
    return 1.0 / probability


@dataclasses.dataclass(frozen=True, slots=True)
class OutcomeProbabilities:
    """Home/away/draw probabilities for a single game."""

    home_win: float
    away_win: float
    draw: float = 0.0

    @property
    def home_fair_odds(self) -> float:
        return fair_odds(self.home_win)

    @property
    def away_fair_odds(self) -> float:
        return fair_odds(self.away_win)


@dataclasses.dataclass(frozen=True, slots=True)
class ExpectedGoals:
    """Scoring rates (Poisson-family means) for both sides of a matchup."""

    lambda_home: float
    lambda_away: float


@dataclasses.dataclass(frozen=True, slots=True)
class ScoreProbability:
    """One cell of the joint final-score distribution."""

    home_goals: int
    away_goals: int
    score: str
    probability: float
    min_fair_odds: float
    expected_value: float | None = None


def score_label(home_goals: int, away_goals: int) -> str:
    return f"{home_goals}-{away_goals}"


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _coerce_str(value: object | None, field: str) -> str:
    if value is None:
        raise TypeError(f"Missing required field {field}")
    if isinstance(value, str):
        return value
    return str(value)


def _coerce_int(value: object | None, field: str) -> int:
    if value is None:
        raise TypeError(f"Missing required field {field}")
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, str)):
        return int(value)
    if isinstance(value, (SupportsInt, SupportsIndex)):
        return int(value)
    raise TypeError(
        f"Field {field} expected int-compatible value, got {type(value).__name__}"
    )


def _coerce_bool(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "ot", "so"}
    return bool(value)


def _coerce_date(value: object | None, field: str) -> dt.date:
    if value is None:
        raise TypeError(f"Missing required field {field}")
    if isinstance(value, (dt.date, str)):
        return parse_game_date(value)
    raise TypeError(f"Field {field} expected a date or ISO string, got {type(value).__name__}")


_FIELDS = (
    "id",
    "date",
    "home_team_id",
    "away_team_id",
    "home_abbr",
    "away_abbr",
    "home_goals",
    "away_goals",
    "decided_in_extra_period",
    "season",
)


def build_game_results(
    rows: Iterable[GameResult | Mapping[str, object] | object],
) -> List[GameResult]:
    """Normalise iterable data into :class:`GameResult` instances.

    Rows may be mappings (for example polars ``iter_rows(named=True)``
    output), arbitrary objects exposing the same attribute names, or
    existing results. Order is preserved.
    """

    results: List[GameResult] = []
    for row in rows:
        if isinstance(row, GameResult):
            results.append(row)
            continue
        if isinstance(row, Mapping):
            values: Mapping[str, object] = row
        else:
            values = {name: getattr(row, name, None) for name in _FIELDS}
        results.append(
            GameResult(
                id=_coerce_int(values.get("id"), "id"),
                date=_coerce_date(values.get("date"), "date"),
                home_team_id=_coerce_int(values.get("home_team_id"), "home_team_id"),
                away_team_id=_coerce_int(values.get("away_team_id"), "away_team_id"),
                home_abbr=_coerce_str(values.get("home_abbr"), "home_abbr").upper(),
                away_abbr=_coerce_str(values.get("away_abbr"), "away_abbr").upper(),
                home_goals=_coerce_int(values.get("home_goals"), "home_goals"),
                away_goals=_coerce_int(values.get("away_goals"), "away_goals"),
                decided_in_extra_period=_coerce_bool(values.get("decided_in_extra_period")),
                season=str(values.get("season") or ""),
            )
        )
    return results


def results_from_frame(frame: pl.DataFrame) -> List[GameResult]:
    """Build results from a polars frame with one row per game."""

    missing = [
        name
        for name in _FIELDS
        if name not in frame.columns and name not in {"decided_in_extra_period", "season"}
    ]
    if missing:
        raise TypeError(f"Results frame is missing columns: {', '.join(missing)}")
    return build_game_results(frame.iter_rows(named=True))


def sort_results(results: Sequence[GameResult]) -> List[GameResult]:
    """Chronological order, stable for games sharing a date."""

    return sorted(results, key=lambda result: result.date)


def ratings_to_frame(table: Sequence[TeamRating]) -> pl.DataFrame:
    """Render a rating table as a polars frame."""

    return pl.DataFrame(
        {
            "team_id": [row.team_id for row in table],
            "abbr": [row.abbr for row in table],
            "rating": [row.rating for row in table],
        },
        schema={"team_id": pl.Int64, "abbr": pl.Utf8, "rating": pl.Float64},
    )


__all__ = [
    "ExpectedGoals",
    "GameResult",
    "OutcomeProbabilities",
    "ScoreProbability",
    "TeamRating",
    "TeamRecentStats",
    "build_game_results",
    "fair_odds",
    "ratings_to_frame",
    "results_from_frame",
    "score_label",
    "sort_results",
]
