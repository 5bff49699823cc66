"""Trading signal models.

Signals published by the squad's technical analyst and consumed by the
squad leader.
"""

from dataclasses import dataclass, field
from enum import Enum


class SignalType(str, Enum):
    """Signal type enumeration."""
    BREAKOUT = "breakout"
    TREND_CONFIRM = "trend_confirm"
    REVERSAL = "reversal"
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


class SignalImportance(str, Enum):
    """How urgently the squad leader should look at a signal."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class TechnicalSignal:
    """Single technical analysis signal.

    trend is "up", "down" or "flat"; strength is a 0-1 score.
    """

    symbol: str
    signal_type: SignalType
    trend: str
    strength: float
    importance: SignalImportance
    price: float
    timestamp: int  # Unix timestamp in milliseconds
    description: str = ""
    indicators: dict = field(default_factory=dict)

    @property
    def is_bullish(self) -> bool:
        """Whether signal argues for a long position."""
        return self.signal_type in (SignalType.BREAKOUT, SignalType.TREND_CONFIRM)

    @property
    def is_bearish(self) -> bool:
        """Whether signal argues for reducing exposure."""
        return self.signal_type in (SignalType.REVERSAL, SignalType.OVERBOUGHT)

    @property
    def is_important(self) -> bool:
        return self.importance in (SignalImportance.HIGH, SignalImportance.CRITICAL)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "signal_type": self.signal_type.value,
            "trend": self.trend,
            "strength": self.strength,
            "importance": self.importance.value,
            "price": self.price,
            "timestamp": self.timestamp,
            "description": self.description,
            "indicators": self.indicators,
        }
