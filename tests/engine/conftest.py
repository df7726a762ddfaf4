import datetime as dt
from typing import List

import pytest

from nhlscore.engine.models import GameResult

REFERENCE_DATE = dt.date(2025, 4, 20)

TEAMS = {1: "TOR", 2: "MTL", 3: "BOS", 4: "EDM"}


def make_result(
    game_id: int,
    date: dt.date,
    home: int,
    away: int,
    home_goals: int,
    away_goals: int,
    *,
    extra: bool = False,
    season: str = "20242025",
) -> GameResult:
    return GameResult(
        id=game_id,
        date=date,
        home_team_id=home,
        away_team_id=away,
        home_abbr=TEAMS[home],
        away_abbr=TEAMS[away],
        home_goals=home_goals,
        away_goals=away_goals,
        decided_in_extra_period=extra,
        season=season,
    )


@pytest.fixture()
def reference_date() -> dt.date:
    return REFERENCE_DATE


@pytest.fixture()
def season_results() -> List[GameResult]:
    start = dt.date(2025, 1, 4)
    schedule = [
        (1, 2, 4, 1, False),
        (3, 4, 2, 3, True),
        (2, 3, 1, 5, False),
        (4, 1, 6, 2, False),
        (1, 3, 3, 2, True),
        (2, 4, 2, 3, True),
        (3, 1, 1, 4, False),
        (4, 2, 5, 0, False),
        (1, 4, 2, 3, False),
        (3, 2, 3, 1, False),
        (2, 1, 1, 2, True),
        (4, 3, 4, 3, True),
    ]
    return [
        make_result(index + 1, start + dt.timedelta(days=3 * index), home, away, hg, ag, extra=extra)
        for index, (home, away, hg, ag, extra) in enumerate(schedule)
    ]
