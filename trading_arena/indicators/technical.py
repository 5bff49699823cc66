"""Technical indicators over close-price series.

RSI, SMA, EMA and MACD computed with TA-Lib. Used by the squad's technical
analyst and by the LLM solo prompt builders.

Short series degrade to neutral values rather than raising:

- RSI: 50 when there are not more than `period` prices, or no price changes
- SMA: the last price when there are fewer than `period` prices
- MACD: all zeros when there are fewer than slow + signal prices
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import talib


@dataclass(frozen=True)
class MACDResult:
    """MACD reading at the last price."""

    macd: float
    signal: float
    histogram: float

    @property
    def trend(self) -> str:
        """"bullish" when MACD is above its signal line, "bearish" below."""
        if self.histogram > 0:
            return "bullish"
        if self.histogram < 0:
            return "bearish"
        return "neutral"

    def to_dict(self) -> dict:
        return {
            "macd": self.macd,
            "signal": self.signal,
            "histogram": self.histogram,
            "trend": self.trend,
        }


def _as_array(prices: Sequence[float]) -> np.ndarray:
    return np.ascontiguousarray(prices, dtype=np.float64)


def _last(values: np.ndarray, default: float) -> float:
    return float(values[-1]) if len(values) and not np.isnan(values[-1]) else default


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index (TA-Lib, Wilder smoothing).

    Args:
        prices: Close prices ordered oldest-first
        period: Lookback period

    Returns:
        RSI in [0, 100]; 50 for short or flat series, 100 when there are no losses
    """
    if len(prices) <= period:
        return 50.0

    values = _as_array(prices)
    # TA-Lib reports 0 when there were neither gains nor losses
    if not np.any(np.diff(values)):
        return 50.0

    return _last(talib.RSI(values, timeperiod=period), 50.0)


def calculate_sma(prices: Sequence[float], period: int) -> float:
    """Simple moving average of the last `period` prices."""
    if not len(prices):
        return 0.0
    if len(prices) < period or period < 2:
        return float(prices[-1])
    return _last(talib.SMA(_as_array(prices), timeperiod=period), float(prices[-1]))


def calculate_ema(prices: Sequence[float], period: int) -> float:
    """Exponential moving average, seeded with the SMA of the first period."""
    if len(prices) < period or period < 2:
        return calculate_sma(prices, period)
    return _last(talib.EMA(_as_array(prices), timeperiod=period), float(prices[-1]))


def calculate_macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """MACD line, signal line and histogram at the last price.

    Example:
        >>> calculate_macd([100.0] * 10)
        MACDResult(macd=0.0, signal=0.0, histogram=0.0)
    """
    if len(prices) < slow_period + signal_period:
        return MACDResult(macd=0.0, signal=0.0, histogram=0.0)

    macd, signal, histogram = talib.MACD(
        _as_array(prices),
        fastperiod=fast_period,
        slowperiod=slow_period,
        signalperiod=signal_period,
    )

    return MACDResult(
        macd=_last(macd, 0.0),
        signal=_last(signal, 0.0),
        histogram=_last(histogram, 0.0),
    )
