"""Joint final-score distributions and value-bet ranking."""

from __future__ import annotations

import dataclasses
import logging
import math
import re
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .configuration import (
    DistributionOptions,
    InvalidConfiguration,
    coerce_distribution_options,
)
from .models import ScoreProbability, fair_odds, score_label

logger = logging.getLogger(__name__)

Grid = List[List[float]]

_LABEL_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


# ---------------------------------------------------------------------------
# Probability mass functions
# ---------------------------------------------------------------------------


def poisson_pmf(k: int, lam: float) -> float:
    """Poisson mass at ``k`` built iteratively to avoid factorial overflow."""

    if k < 0:
        return 0.0
    term = math.exp(-lam)
    for i in range(1, k + 1):
        term *= lam / i
    return term


def negative_binomial_pmf(k: int, mean: float, dispersion: float) -> float:
    """Negative binomial mass with the given mean and shape ``dispersion``.

    Variance is ``mean + mean**2 / dispersion``; a large dispersion
    approaches Poisson. Evaluated in log space.
    """

    if k < 0:
        return 0.0
    if mean <= 0.0:
        return 1.0 if k == 0 else 0.0
    log_prob = (
        math.lgamma(k + dispersion)
        - math.lgamma(dispersion)
        - math.lgamma(k + 1)
        + dispersion * math.log(dispersion / (dispersion + mean))
        + k * math.log(mean / (dispersion + mean))
    )
    return math.exp(log_prob)


def bivariate_poisson_pmf(
    home_goals: int,
    away_goals: int,
    lam_home: float,
    lam_away: float,
    lam_shared: float,
) -> float:
    """Trivariate-reduction bivariate Poisson mass.

    Home goals are ``X1 + X3`` and away goals ``X2 + X3`` with independent
    Poisson components of rates ``lam_home``, ``lam_away`` and
    ``lam_shared``; the mass is the convolution over the shared count.
    """

    if home_goals < 0 or away_goals < 0:
        return 0.0
    total = 0.0
    for k in range(min(home_goals, away_goals) + 1):
        total += (
            poisson_pmf(home_goals - k, lam_home)
            * poisson_pmf(away_goals - k, lam_away)
            * poisson_pmf(k, lam_shared)
        )
    return total


# ---------------------------------------------------------------------------
# Grid construction
# ---------------------------------------------------------------------------


def _independent_grid(
    pmf: Callable[[int, float], float], lambda_home: float, lambda_away: float, max_goals: int
) -> tuple[Grid, List[float], List[float]]:
    home = [pmf(k, lambda_home) for k in range(max_goals + 1)]
    away = [pmf(k, lambda_away) for k in range(max_goals + 1)]
    grid = [[h * a for a in away] for h in home]
    return grid, home, away


def _fold_tails(grid: Grid, home_marginal: Sequence[float], away_marginal: Sequence[float]) -> None:
    """Make the boundary row/column hold "at least ``max_goals``" mass.

    Each boundary cell receives its exact marginal mass minus the interior
    cells already on that row or column; the corner absorbs what remains so
    the grid sums to 1.
    """

    cap = len(grid) - 1
    for h in range(cap):
        interior = sum(grid[h][a] for a in range(cap))
        grid[h][cap] = max(0.0, home_marginal[h] - interior)
    for a in range(cap):
        interior = sum(grid[h][a] for h in range(cap))
        grid[cap][a] = max(0.0, away_marginal[a] - interior)
    grid[cap][cap] = 0.0
    assigned = sum(sum(row) for row in grid)
    grid[cap][cap] = max(0.0, 1.0 - assigned)
    _normalise(grid)


def _normalise(grid: Grid) -> None:
    total = sum(sum(row) for row in grid)
    if total <= 0.0:
        return
    for row in grid:
        for a in range(len(row)):
            row[a] /= total


def _taper(grid: Grid, threshold: int, factor: float) -> None:
    for h, row in enumerate(grid):
        for a in range(len(row)):
            if h > threshold or a > threshold:
                excess = max(0, h - threshold) + max(0, a - threshold)
                row[a] *= factor**excess
    _normalise(grid)


def _parse_label(label: str) -> tuple[int, int]:
    match = _LABEL_PATTERN.match(label)
    if not match:
        raise InvalidConfiguration(f"Market odds key {label!r} is not an 'H-A' score label")
    return int(match.group(1)), int(match.group(2))


def _validate_market_odds(market_odds: Mapping[str, float]) -> Dict[tuple[int, int], float]:
    prices: Dict[tuple[int, int], float] = {}
    for label, price in market_odds.items():
        key = _parse_label(str(label))
        try:
            value = float(price)
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"Market odds for {label!r} must be numeric") from exc
        if not math.isfinite(value) or value <= 1.0:
            raise InvalidConfiguration(
                f"Market odds for {label!r} must be decimal odds above 1.0, got {price!r}"
            )
        prices[key] = value
    return prices


def _validate_lambda(name: str, value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"{name} must be numeric, got {value!r}") from exc
    if not math.isfinite(number) or number < 0.0:
        raise InvalidConfiguration(f"{name} must be a finite non-negative rate, got {value!r}")
    return number


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ScoreDistributionEngine:
    """Expand two scoring rates into a ranked final-score distribution."""

    def __init__(self, default_options: DistributionOptions | None = None) -> None:
        self.default_options = default_options or DistributionOptions()

    def compute(
        self,
        lambda_home: float,
        lambda_away: float,
        options: DistributionOptions | Mapping[str, Any] | None = None,
        market_odds: Mapping[str, float] | None = None,
    ) -> List[ScoreProbability]:
        """Return every score cell sorted by descending probability.

        Probabilities sum to 1: boundary cells carry the mass beyond
        ``max_goals_per_side`` and tapering is followed by renormalisation.
        When ``market_odds`` (decimal odds keyed by ``"H-A"``) are given,
        priced cells carry ``expected_value = probability * odds``.
        """

        resolved = self.default_options if options is None else coerce_distribution_options(options)
        lam_home = _validate_lambda("lambda_home", lambda_home)
        lam_away = _validate_lambda("lambda_away", lambda_away)
        prices = _validate_market_odds(market_odds) if market_odds else {}

        grid = self.grid(lam_home, lam_away, resolved)
        cells: List[ScoreProbability] = []
        for h, row in enumerate(grid):
            for a, probability in enumerate(row):
                price = prices.get((h, a))
                cells.append(
                    ScoreProbability(
                        home_goals=h,
                        away_goals=a,
                        score=score_label(h, a),
                        probability=probability,
                        min_fair_odds=fair_odds(probability),
                        expected_value=None if price is None else probability * price,
                    )
                )
        unmatched = [key for key in prices if max(key) > resolved.max_goals_per_side]
        if unmatched:
            logger.debug(
                "Ignoring market odds outside the %d-goal grid: %s",
                resolved.max_goals_per_side,
                ", ".join(score_label(*key) for key in unmatched),
            )
        cells.sort(key=lambda cell: cell.probability, reverse=True)
        return cells

    def grid(
        self, lambda_home: float, lambda_away: float, options: DistributionOptions
    ) -> Grid:
        """Return the truncation-corrected (and optionally tapered) grid.

        ``grid[h][a]`` is the probability of home ``h`` / away ``a``.
        """

        max_goals = options.max_goals_per_side
        if options.model == "poisson":
            grid, home, away = _independent_grid(poisson_pmf, lambda_home, lambda_away, max_goals)
        elif options.model == "negative-binomial":
            dispersion = options.dispersion

            def nb(k: int, mean: float) -> float:
                return negative_binomial_pmf(k, mean, dispersion)

            grid, home, away = _independent_grid(nb, lambda_home, lambda_away, max_goals)
        elif options.model == "bivariate-poisson":
            grid, home, away = self._bivariate_grid(lambda_home, lambda_away, options)
        else:  # pragma: no cover - guarded by DistributionOptions validation
            raise InvalidConfiguration(f"Unsupported distribution model {options.model!r}")

        _fold_tails(grid, home, away)
        if options.apply_tapering:
            _taper(grid, options.taper_threshold, options.taper_factor)
        logger.debug(
            "Built %s grid (max %d) for lambdas %.3f / %.3f",
            options.model,
            max_goals,
            lambda_home,
            lambda_away,
        )
        return grid

    @staticmethod
    def _bivariate_grid(
        lambda_home: float, lambda_away: float, options: DistributionOptions
    ) -> tuple[Grid, List[float], List[float]]:
        upper = min(lambda_home, lambda_away)
        shared = min(options.correlation, upper)
        if shared < options.correlation:
            logger.warning(
                "Correlation %.3f exceeds min(lambda_home, lambda_away)=%.3f; clamped",
                options.correlation,
                upper,
            )
        lam1 = max(0.0, lambda_home - shared)
        lam2 = max(0.0, lambda_away - shared)
        max_goals = options.max_goals_per_side
        grid = [
            [bivariate_poisson_pmf(h, a, lam1, lam2, shared) for a in range(max_goals + 1)]
            for h in range(max_goals + 1)
        ]
        # marginals of X1 + X3 and X2 + X3 are Poisson in the total rate
        home = [poisson_pmf(k, lam1 + shared) for k in range(max_goals + 1)]
        away = [poisson_pmf(k, lam2 + shared) for k in range(max_goals + 1)]
        return grid, home, away


def annotate_market_odds(
    matrix: Sequence[ScoreProbability], market_odds: Mapping[str, float]
) -> List[ScoreProbability]:
    """Attach ``expected_value`` to cells priced in ``market_odds``."""

    prices = _validate_market_odds(market_odds)
    annotated: List[ScoreProbability] = []
    for cell in matrix:
        price = prices.get((cell.home_goals, cell.away_goals))
        if price is None:
            annotated.append(cell)
        else:
            annotated.append(
                dataclasses.replace(cell, expected_value=cell.probability * price)
            )
    return annotated


def top_value_bets(
    matrix: Sequence[ScoreProbability], n: int = 10, threshold: float = 1.0
) -> List[ScoreProbability]:
    """Rank score bets for display.

    When any cell carries an expected value, return up to ``n`` cells whose
    expected value exceeds ``threshold`` ordered by expected value. Without
    market prices, return the ``n`` most likely scores. An expected value of
    exactly 0 counts as priced; only ``None`` means absent.
    """

    if n <= 0:
        return []
    priced = [cell for cell in matrix if cell.expected_value is not None]
    if priced:
        value = [cell for cell in priced if cell.expected_value > threshold]
        value.sort(key=lambda cell: cell.expected_value, reverse=True)
        return value[:n]
    ranked = sorted(matrix, key=lambda cell: cell.probability, reverse=True)
    return ranked[:n]


__all__ = [
    "ScoreDistributionEngine",
    "annotate_market_odds",
    "bivariate_poisson_pmf",
    "negative_binomial_pmf",
    "poisson_pmf",
    "top_value_bets",
]
