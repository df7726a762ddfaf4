"""Odds conversions and market-odds parsing."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from .configuration import InvalidConfiguration

OddsValue = int | float | str

__all__ = [
    "OddsValue",
    "american_to_decimal",
    "implied_probability_from_decimal",
    "normalise_american_odds",
    "parse_market_odds",
]


def normalise_american_odds(value: OddsValue) -> int:
    """Coerce American odds into a signed integer."""

    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    stripped = value.strip()
    if not stripped:
        raise ValueError("Empty odds value")
    if stripped[0] in {"+", "-"}:
        return int(stripped)
    return int(f"+{stripped}")


def american_to_decimal(value: OddsValue) -> float:
    """Convert an American price into European decimal odds."""

    price = normalise_american_odds(value)
    if price == 0:
        raise ValueError("American odds cannot be zero")
    if price > 0:
        return 1.0 + price / 100.0
    return 1.0 + 100.0 / -price


def implied_probability_from_decimal(decimal_odds: float) -> float:
    """Return the bookmaker's implied win probability from decimal odds."""

    if decimal_odds <= 1.0:
        raise ValueError("Decimal odds must exceed 1.0")
    return 1.0 / decimal_odds


def _price_to_decimal(label: str, value: Any) -> float:
    # "+450" / "-120" strings are American prices; bare numbers are decimal
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in {"+", "-"}:
            try:
                return american_to_decimal(stripped)
            except ValueError as exc:
                raise InvalidConfiguration(f"Invalid American odds for {label!r}: {value!r}") from exc
        try:
            return float(stripped)
        except ValueError as exc:
            raise InvalidConfiguration(f"Invalid odds for {label!r}: {value!r}") from exc
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfiguration(f"Invalid odds for {label!r}: {value!r}")
    return float(value)


def parse_market_odds(raw: str | Mapping[str, Any]) -> Dict[str, float]:
    """Parse market odds keyed by ``"H-A"`` labels into decimal prices.

    ``raw`` is a JSON object string or an already decoded mapping. Values are
    decimal odds, or American odds when given as signed strings.
    """

    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidConfiguration(f"Market odds are not valid JSON: {exc}") from exc
    else:
        decoded = raw
    if not isinstance(decoded, Mapping):
        raise InvalidConfiguration("Market odds must be a JSON object keyed by score label")
    return {str(label): _price_to_decimal(str(label), value) for label, value in decoded.items()}
