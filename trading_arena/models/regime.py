"""Market regime models.

The squad leader classifies the market from the trend signals it has seen
in the last hour before scoring bull and bear arguments.
"""

from dataclasses import dataclass
from enum import Enum

from .signals import SignalType, TechnicalSignal


class MarketRegime(str, Enum):
    """Market regime enumeration."""
    TRENDING_UP = "trending_up"
    TRENDING_DOWN = "trending_down"
    OSCILLATING = "oscillating"  # Trend signals in both directions
    EXTREME_RISK = "extreme_risk"
    CHOPPY = "choppy"  # No trend signals at all


@dataclass
class RegimeDetector:
    """Market regime classification from technical signals."""

    @staticmethod
    def detect_from_signals(signals: list[TechnicalSignal]) -> MarketRegime:
        """Classify the market from a window of signals.

        Only breakout / trend-confirm signals count. A direction must lead
        the other by more than one signal to be called a trend.

        Args:
            signals: Signals observed in the decision window

        Returns:
            MarketRegime classification

        Example:
            >>> RegimeDetector.detect_from_signals([])
            <MarketRegime.CHOPPY: 'choppy'>
        """
        if any(s.importance.value == "critical" and s.is_bearish for s in signals):
            return MarketRegime.EXTREME_RISK

        trend_signals = [
            s for s in signals
            if s.signal_type in (SignalType.BREAKOUT, SignalType.TREND_CONFIRM)
        ]
        if not trend_signals:
            return MarketRegime.CHOPPY

        up_count = sum(1 for s in trend_signals if s.trend == "up")
        down_count = sum(1 for s in trend_signals if s.trend == "down")

        if up_count > down_count + 1:
            return MarketRegime.TRENDING_UP
        if down_count > up_count + 1:
            return MarketRegime.TRENDING_DOWN
        return MarketRegime.OSCILLATING
