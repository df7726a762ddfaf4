from __future__ import annotations

import pytest

from nhlscore.engine.expected_goals import ExpectedGoalsEstimator
from nhlscore.engine.models import TeamRecentStats


@pytest.fixture()
def home_stats() -> TeamRecentStats:
    return TeamRecentStats(
        abbr="TOR",
        home_goals_for_per_game=3.2,
        home_goals_against_per_game=2.6,
        away_goals_for_per_game=2.8,
        away_goals_against_per_game=3.0,
        games_considered=20,
    )


@pytest.fixture()
def away_stats() -> TeamRecentStats:
    return TeamRecentStats(
        abbr="MTL",
        home_goals_for_per_game=3.0,
        home_goals_against_per_game=2.9,
        away_goals_for_per_game=2.5,
        away_goals_against_per_game=3.4,
        games_considered=20,
    )


def test_blends_form_home_edge_and_rating_gap(home_stats, away_stats) -> None:
    expected = ExpectedGoalsEstimator().estimate(home_stats, away_stats, 1550.0, 1450.0)
    assert expected.lambda_home == pytest.approx(3.3 + 0.28 + 0.125)
    assert expected.lambda_away == pytest.approx(2.55 - 0.125)


def test_rating_gap_shifts_lambdas_in_opposite_directions(home_stats, away_stats) -> None:
    estimator = ExpectedGoalsEstimator()
    even = estimator.estimate(home_stats, away_stats, 1500.0, 1500.0)
    stronger = estimator.estimate(home_stats, away_stats, 1700.0, 1500.0)
    assert stronger.lambda_home - even.lambda_home == pytest.approx(0.25)
    assert even.lambda_away - stronger.lambda_away == pytest.approx(0.25)


def test_zero_home_split_falls_back_to_mean_of_splits(away_stats) -> None:
    sparse = TeamRecentStats(abbr="SEA", away_goals_for_per_game=2.8, home_goals_against_per_game=2.0)
    expected = ExpectedGoalsEstimator(home_goal_advantage=0.0).estimate(
        sparse, away_stats, 1500.0, 1500.0
    )
    assert expected.lambda_home == pytest.approx((1.4 + 3.4) / 2.0)


def test_special_teams_adjust_only_when_both_rates_known(home_stats, away_stats) -> None:
    estimator = ExpectedGoalsEstimator()
    base = estimator.estimate(home_stats, away_stats, 1500.0, 1500.0)

    partial = estimator.estimate(
        home_stats.with_special_teams(25.0, None), away_stats, 1500.0, 1500.0
    )
    assert partial == base

    adjusted = estimator.estimate(
        home_stats.with_special_teams(25.0, 82.0),
        away_stats.with_special_teams(18.0, 80.0),
        1500.0,
        1500.0,
    )
    assert adjusted.lambda_home - base.lambda_home == pytest.approx((25.0 - 80.0) / 1000.0)
    assert adjusted.lambda_away - base.lambda_away == pytest.approx((18.0 - 82.0) / 1000.0)


def test_explicit_zero_rate_is_not_treated_as_missing(home_stats, away_stats) -> None:
    estimator = ExpectedGoalsEstimator()
    base = estimator.estimate(home_stats, away_stats, 1500.0, 1500.0)
    adjusted = estimator.estimate(
        home_stats.with_special_teams(0.0, None),
        away_stats.with_special_teams(None, 80.0),
        1500.0,
        1500.0,
    )
    assert adjusted.lambda_home - base.lambda_home == pytest.approx(-0.08)


def test_lambdas_are_floored(home_stats, away_stats) -> None:
    expected = ExpectedGoalsEstimator().estimate(home_stats, away_stats, 5000.0, 1000.0)
    assert expected.lambda_away == pytest.approx(0.05)
    empty = TeamRecentStats(abbr="NEW")
    floored = ExpectedGoalsEstimator(home_goal_advantage=0.0).estimate(empty, empty, 1500.0, 1500.0)
    assert floored.lambda_home == pytest.approx(0.05)
    assert floored.lambda_away == pytest.approx(0.05)
