"""Volatility analysis over a candle window.

Volatility here is the window's full range relative to its low:
(max high - min low) / min low * 100.
"""

from dataclasses import dataclass
from typing import Sequence

from ..models import OHLCV


@dataclass(frozen=True)
class VolatilityResult:
    """Range volatility of a candle window."""

    volatility: float  # Percent, e.g. 4.5 means 4.5%
    highest: float
    lowest: float
    in_range: bool

    def to_dict(self) -> dict:
        return {
            "volatility": self.volatility,
            "highest": self.highest,
            "lowest": self.lowest,
            "in_range": self.in_range,
        }


def _range_volatility(highest: float, lowest: float) -> float:
    if lowest == 0:
        return 0.0
    return (highest - lowest) / lowest * 100


def calculate_volatility(candles: Sequence[OHLCV]) -> float:
    """Range volatility in percent (0 for an empty window)."""
    if not candles:
        return 0.0

    return _range_volatility(max(c.high for c in candles), min(c.low for c in candles))


def analyze_volatility(
    candles: Sequence[OHLCV],
    min_percent: float,
    max_percent: float,
) -> VolatilityResult:
    """Compute range volatility and check it against an acceptable band.

    Args:
        candles: Candle window
        min_percent: Lower bound of the band (inclusive)
        max_percent: Upper bound of the band (inclusive)

    Returns:
        VolatilityResult; an empty window yields (0, 0, 0, False)
    """
    if not candles:
        return VolatilityResult(volatility=0.0, highest=0.0, lowest=0.0, in_range=False)

    highest = max(c.high for c in candles)
    lowest = min(c.low for c in candles)
    volatility = _range_volatility(highest, lowest)

    return VolatilityResult(
        volatility=volatility,
        highest=highest,
        lowest=lowest,
        in_range=min_percent <= volatility <= max_percent,
    )
