"""Stake sizing for ranked score bets."""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import List, Sequence

from .configuration import InvalidConfiguration
from .models import ScoreProbability
from .utils import implied_probability_from_decimal

logger = logging.getLogger(__name__)


class KellyCriterion:
    """Utility for computing fractional Kelly bet sizes on decimal odds."""

    @staticmethod
    def fraction(
        win_probability: float,
        decimal_odds: float,
        *,
        divider: float = 1.0,
        cap: float | None = None,
    ) -> float:
        """Share of bankroll to stake; 0 when the bet has no edge.

        ``divider`` selects fractional Kelly (2 = half Kelly) and must lie in
        [1, 10]. ``cap`` bounds the returned fraction.
        """

        if not 0.0 <= win_probability <= 1.0:
            raise ValueError("Probability must be between 0 and 1")
        if not math.isfinite(decimal_odds) or decimal_odds <= 1.0:
            raise ValueError("Decimal odds must exceed 1.0")
        if not 1.0 <= divider <= 10.0:
            raise ValueError("Kelly divider must be between 1 and 10")
        b = decimal_odds - 1.0
        numerator = b * win_probability - (1.0 - win_probability)
        if numerator <= 0:
            return 0.0
        value = numerator / b / divider
        if cap is not None:
            value = min(value, max(0.0, cap))
        return value


@dataclasses.dataclass(frozen=True, slots=True)
class StakedBet:
    """A ranked score bet with its suggested stake."""

    bet: ScoreProbability
    decimal_odds: float
    edge: float
    kelly_fraction: float
    stake: float


def stake_value_bets(
    bets: Sequence[ScoreProbability],
    bankroll: float,
    *,
    divider: float = 1.0,
    cap: float | None = None,
) -> List[StakedBet]:
    """Size every priced bet in ``bets`` with fractional Kelly.

    The market price is recovered from ``expected_value / probability``;
    bets without an expected value are skipped.
    """

    if bankroll <= 0:
        raise InvalidConfiguration("bankroll must be greater than zero")
    staked: List[StakedBet] = []
    for bet in bets:
        if bet.expected_value is None or bet.probability <= 0.0:
            continue
        odds = bet.expected_value / bet.probability
        fraction = KellyCriterion.fraction(bet.probability, odds, divider=divider, cap=cap)
        staked.append(
            StakedBet(
                bet=bet,
                decimal_odds=odds,
                edge=bet.probability - implied_probability_from_decimal(odds),
                kelly_fraction=fraction,
                stake=round(bankroll * fraction, 2),
            )
        )
    logger.debug("Sized %d of %d bets", len(staked), len(bets))
    return staked


__all__ = ["KellyCriterion", "StakedBet", "stake_value_bets"]
