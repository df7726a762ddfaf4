from __future__ import annotations

import math

import pytest

from nhlscore.engine.configuration import DistributionOptions, InvalidConfiguration
from nhlscore.engine.distributions import (
    ScoreDistributionEngine,
    annotate_market_odds,
    bivariate_poisson_pmf,
    negative_binomial_pmf,
    poisson_pmf,
    top_value_bets,
)
from nhlscore.engine.models import ScoreProbability


def _by_label(cells):
    return {cell.score: cell for cell in cells}


def _total(cells) -> float:
    return sum(cell.probability for cell in cells)


def test_poisson_pmf_values() -> None:
    assert poisson_pmf(0, 0.0) == 1.0
    assert poisson_pmf(3, 0.0) == 0.0
    assert poisson_pmf(-1, 2.0) == 0.0
    assert poisson_pmf(2, 3.0) == pytest.approx(4.5 * math.exp(-3.0))
    assert poisson_pmf(60, 3.0) > 0.0


def test_negative_binomial_approaches_poisson_for_large_dispersion() -> None:
    for k in range(8):
        assert negative_binomial_pmf(k, 2.5, 1e7) == pytest.approx(poisson_pmf(k, 2.5), rel=1e-4)


def test_negative_binomial_zero_mean_is_point_mass() -> None:
    assert negative_binomial_pmf(0, 0.0, 2.0) == 1.0
    assert negative_binomial_pmf(1, 0.0, 2.0) == 0.0


def test_negative_binomial_is_overdispersed() -> None:
    mean, dispersion = 3.0, 2.0
    ks = range(200)
    probs = [negative_binomial_pmf(k, mean, dispersion) for k in ks]
    assert sum(probs) == pytest.approx(1.0, abs=1e-9)
    variance = sum(p * (k - mean) ** 2 for k, p in zip(ks, probs))
    assert variance == pytest.approx(mean + mean**2 / dispersion, rel=1e-6)


def test_bivariate_pmf_without_shared_rate_is_independent() -> None:
    assert bivariate_poisson_pmf(2, 1, 3.0, 2.5, 0.0) == pytest.approx(
        poisson_pmf(2, 3.0) * poisson_pmf(1, 2.5)
    )
    assert bivariate_poisson_pmf(-1, 1, 3.0, 2.5, 0.2) == 0.0


def test_poisson_grid_ranks_most_likely_scores() -> None:
    cells = ScoreDistributionEngine().compute(3.0, 2.5, {"model": "poisson", "maxGoalsPerSide": 8})

    assert len(cells) == 81
    assert _total(cells) == pytest.approx(1.0, abs=1e-6)
    assert [cells[0].score, cells[1].score] == ["2-2", "3-2"]
    assert cells[0].probability == pytest.approx(14.0625 * math.exp(-5.5), rel=1e-6)
    assert cells[0].min_fair_odds == pytest.approx(1.0 / cells[0].probability)
    assert cells[0].expected_value is None
    probabilities = [cell.probability for cell in cells]
    assert probabilities == sorted(probabilities, reverse=True)


def test_boundary_cells_hold_tail_mass() -> None:
    engine = ScoreDistributionEngine()
    cells = engine.compute(3.0, 2.5, DistributionOptions(max_goals_per_side=2))
    capped_home = sum(cell.probability for cell in cells if cell.home_goals == 2)
    capped_away = sum(cell.probability for cell in cells if cell.away_goals == 2)
    assert capped_home == pytest.approx(1.0 - poisson_pmf(0, 3.0) - poisson_pmf(1, 3.0))
    assert capped_away == pytest.approx(1.0 - poisson_pmf(0, 2.5) - poisson_pmf(1, 2.5))
    assert _total(cells) == pytest.approx(1.0, abs=1e-9)


def test_zero_lambdas_put_all_mass_on_nil_nil() -> None:
    cells = ScoreDistributionEngine().compute(0.0, 0.0)
    assert cells[0].score == "0-0"
    assert cells[0].probability == pytest.approx(1.0)
    assert math.isinf(cells[-1].min_fair_odds)


def test_bivariate_without_correlation_matches_poisson() -> None:
    engine = ScoreDistributionEngine()
    poisson = _by_label(engine.compute(2.8, 2.2, {"model": "poisson"}))
    bivariate = _by_label(
        engine.compute(2.8, 2.2, {"model": "bivariate-poisson", "correlation": 0.0})
    )
    for label, cell in poisson.items():
        assert bivariate[label].probability == pytest.approx(cell.probability, abs=1e-12)


def test_bivariate_correlation_lifts_draws() -> None:
    engine = ScoreDistributionEngine()

    def draw_mass(correlation: float) -> float:
        cells = engine.compute(
            3.0, 2.5, {"model": "bivariate-poisson", "correlation": correlation}
        )
        return sum(cell.probability for cell in cells if cell.home_goals == cell.away_goals)

    assert draw_mass(0.4) > draw_mass(0.0)


def test_bivariate_correlation_above_smaller_rate_is_clamped(caplog) -> None:
    engine = ScoreDistributionEngine()
    with caplog.at_level("WARNING", logger="nhlscore.engine.distributions"):
        clamped = engine.compute(3.0, 0.3, {"model": "bivariate-poisson", "correlation": 5.0})
    assert "clamped" in caplog.text
    exact = engine.compute(3.0, 0.3, {"model": "bivariate-poisson", "correlation": 0.3})
    assert [cell.probability for cell in clamped] == pytest.approx(
        [cell.probability for cell in exact]
    )
    assert _total(clamped) == pytest.approx(1.0, abs=1e-6)


def test_negative_binomial_spreads_mass() -> None:
    engine = ScoreDistributionEngine()
    poisson = _by_label(engine.compute(3.0, 2.5, {"model": "poisson"}))
    wide = _by_label(engine.compute(3.0, 2.5, {"model": "negative-binomial", "dispersion": 1.5}))
    assert _total(wide.values()) == pytest.approx(1.0, abs=1e-6)
    assert wide["0-0"].probability > poisson["0-0"].probability
    assert wide["2-2"].probability < poisson["2-2"].probability


def test_tapering_shrinks_blowouts_and_renormalises() -> None:
    engine = ScoreDistributionEngine()
    plain = _by_label(engine.compute(3.0, 2.5, {"model": "poisson"}))
    tapered = _by_label(
        engine.compute(
            3.0,
            2.5,
            {"model": "poisson", "applyTapering": True, "taperThreshold": 3, "taperFactor": 0.5},
        )
    )
    assert _total(tapered.values()) == pytest.approx(1.0, abs=1e-9)
    plain_ratio = plain["5-0"].probability / plain["0-0"].probability
    tapered_ratio = tapered["5-0"].probability / tapered["0-0"].probability
    assert tapered_ratio == pytest.approx(plain_ratio * 0.5**2)
    assert tapered["2-1"].probability > plain["2-1"].probability
    assert tapered["6-6"].probability < plain["6-6"].probability


@pytest.mark.parametrize("model", ["poisson", "bivariate-poisson", "negative-binomial"])
def test_tapering_lowers_every_blowout_cell(model: str) -> None:
    engine = ScoreDistributionEngine()
    base = {"model": model, "correlation": 0.3, "dispersion": 2.0}
    plain = _by_label(engine.compute(3.0, 2.5, base))
    tapered = _by_label(
        engine.compute(
            3.0, 2.5, {**base, "applyTapering": True, "taperThreshold": 5, "taperFactor": 0.7}
        )
    )

    inside = [label for label, cell in plain.items() if max(cell.home_goals, cell.away_goals) <= 5]
    beyond = [label for label in plain if label not in inside]
    assert len(beyond) == 81 - 36
    for label in beyond:
        assert tapered[label].probability < plain[label].probability, label
    assert sum(tapered[label].probability for label in inside) >= sum(
        plain[label].probability for label in inside
    )
    assert _total(tapered.values()) == pytest.approx(1.0, abs=1e-9)


def test_taper_factor_one_is_a_no_op() -> None:
    engine = ScoreDistributionEngine()
    plain = engine.compute(3.0, 2.5)
    tapered = engine.compute(3.0, 2.5, {"apply_tapering": True, "taper_factor": 1.0})
    assert [cell.probability for cell in tapered] == pytest.approx(
        [cell.probability for cell in plain]
    )


def test_default_options_come_from_engine() -> None:
    engine = ScoreDistributionEngine(DistributionOptions(max_goals_per_side=4))
    assert len(engine.compute(3.0, 2.5)) == 25


@pytest.mark.parametrize(
    "options",
    [
        {"model": "skellam"},
        {"maxGoalsPerSide": 0},
        {"correlation": -0.1},
        {"dispersion": 0.0},
        {"taperFactor": 0.0},
        {"unknownKey": 1},
    ],
)
def test_invalid_options_are_rejected(options) -> None:
    with pytest.raises(InvalidConfiguration):
        ScoreDistributionEngine().compute(3.0, 2.5, options)


@pytest.mark.parametrize("lambdas", [(-0.1, 2.0), (2.0, float("nan")), (float("inf"), 1.0)])
def test_invalid_lambdas_are_rejected(lambdas) -> None:
    with pytest.raises(InvalidConfiguration):
        ScoreDistributionEngine().compute(*lambdas)


@pytest.mark.parametrize(
    "market_odds",
    [{"2-2": 1.0}, {"2-2": 0.5}, {"2-2": float("inf")}, {"two-two": 9.0}, {"2-2": "abc"}],
)
def test_invalid_market_odds_are_rejected(market_odds) -> None:
    with pytest.raises(InvalidConfiguration):
        ScoreDistributionEngine().compute(3.0, 2.5, market_odds=market_odds)


def test_market_odds_attach_expected_value() -> None:
    cells = ScoreDistributionEngine().compute(
        3.0, 2.5, market_odds={"2-2": 20.0, "3-2": 15.0, "12-0": 500.0}
    )
    by_label = _by_label(cells)
    assert by_label["2-2"].expected_value == pytest.approx(by_label["2-2"].probability * 20.0)
    assert by_label["3-2"].expected_value == pytest.approx(by_label["3-2"].probability * 15.0)
    priced = [cell for cell in cells if cell.expected_value is not None]
    assert {cell.score for cell in priced} == {"2-2", "3-2"}


def test_annotate_market_odds_matches_compute() -> None:
    engine = ScoreDistributionEngine()
    plain = engine.compute(3.0, 2.5)
    annotated = annotate_market_odds(plain, {"1-1": 11.0})
    direct = engine.compute(3.0, 2.5, market_odds={"1-1": 11.0})
    assert [cell.expected_value for cell in annotated] == [cell.expected_value for cell in direct]


def _cell(score: str, probability: float, expected_value: float | None = None) -> ScoreProbability:
    home, away = (int(part) for part in score.split("-"))
    return ScoreProbability(
        home_goals=home,
        away_goals=away,
        score=score,
        probability=probability,
        min_fair_odds=1.0 / probability,
        expected_value=expected_value,
    )


def test_top_value_bets_without_prices_ranks_by_probability() -> None:
    cells = [_cell("1-0", 0.05), _cell("2-2", 0.07), _cell("3-2", 0.06)]
    ranked = top_value_bets(cells, n=2)
    assert [cell.score for cell in ranked] == ["2-2", "3-2"]


def test_top_value_bets_with_prices_filters_and_ranks_by_value() -> None:
    cells = [
        _cell("1-0", 0.05, 1.10),
        _cell("2-2", 0.07, 0.95),
        _cell("3-2", 0.06, 1.40),
        _cell("4-4", 0.01),
    ]
    ranked = top_value_bets(cells, n=10, threshold=1.0)
    assert [cell.score for cell in ranked] == ["3-2", "1-0"]
    assert top_value_bets(cells, n=1)[0].score == "3-2"


def test_zero_expected_value_counts_as_priced() -> None:
    cells = [_cell("1-0", 0.05, 0.0), _cell("2-2", 0.07)]
    assert top_value_bets(cells) == []


def test_top_value_bets_non_positive_n() -> None:
    assert top_value_bets([_cell("1-0", 0.05)], n=0) == []
