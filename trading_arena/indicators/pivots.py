"""Pivot point detection.

A pivot low is a candle whose low is strictly below the lows of the n
candles on each side; a pivot high is the mirror image on highs. Pivots
serve as candidate support (buy) and resistance (sell) levels for the grid
contestant. Candles must be ordered oldest-first.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..models import OHLCV


@dataclass(frozen=True)
class PivotPoint:
    """Local extreme in a candle series."""

    index: int  # Position in the candle list
    price: float  # The candle's low (pivot low) or high (pivot high)
    timestamp: int


@dataclass(frozen=True)
class PivotLevels:
    """Selected pivot prices: lows ascending, highs descending."""

    lows: list[float] = field(default_factory=list)
    highs: list[float] = field(default_factory=list)


def find_pivot_lows(candles: Sequence[OHLCV], n: int) -> list[PivotPoint]:
    """Find all pivot lows.

    Args:
        candles: Candles ordered oldest-first
        n: Number of candles compared on each side

    Returns:
        Pivot lows in chronological order ([] when fewer than 2n+1 candles)
    """
    if n < 1 or len(candles) < 2 * n + 1:
        return []

    pivots = []
    for i in range(n, len(candles) - n):
        low = candles[i].low
        neighbours = list(candles[i - n:i]) + list(candles[i + 1:i + n + 1])
        if all(c.low > low for c in neighbours):
            pivots.append(PivotPoint(index=i, price=low, timestamp=candles[i].timestamp))

    return pivots


def find_pivot_highs(candles: Sequence[OHLCV], n: int) -> list[PivotPoint]:
    """Find all pivot highs.

    Args:
        candles: Candles ordered oldest-first
        n: Number of candles compared on each side

    Returns:
        Pivot highs in chronological order ([] when fewer than 2n+1 candles)
    """
    if n < 1 or len(candles) < 2 * n + 1:
        return []

    pivots = []
    for i in range(n, len(candles) - n):
        high = candles[i].high
        neighbours = list(candles[i - n:i]) + list(candles[i + 1:i + n + 1])
        if all(c.high < high for c in neighbours):
            pivots.append(PivotPoint(index=i, price=high, timestamp=candles[i].timestamp))

    return pivots


def get_recent_pivots(
    candles: Sequence[OHLCV],
    n: int,
    count: int,
    ref_price: Optional[float] = None,
) -> PivotLevels:
    """Select up to count pivot prices per side.

    With ref_price the pivots closest to it (absolute distance) win;
    without it the most recent pivots win. Either way the result is
    re-sorted: lows ascending, highs descending.

    Example:
        >>> levels = get_recent_pivots(candles_15m, n=3, count=3)
        >>> levels.lows   # e.g. [41200.0, 41550.0, 41800.0]
    """
    if count <= 0:
        return PivotLevels()

    all_lows = find_pivot_lows(candles, n)
    all_highs = find_pivot_highs(candles, n)

    if ref_price is not None:
        lows = sorted(all_lows, key=lambda p: abs(p.price - ref_price))[:count]
        highs = sorted(all_highs, key=lambda p: abs(p.price - ref_price))[:count]
    else:
        lows = all_lows[-count:]
        highs = all_highs[-count:]

    return PivotLevels(
        lows=sorted(p.price for p in lows),
        highs=sorted((p.price for p in highs), reverse=True),
    )
