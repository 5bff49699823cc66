"""Trading decision models.

Models for the squad leader's decisions and the LLM oracle's replies.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .regime import MarketRegime


class DecisionAction(str, Enum):
    """Decision action enumeration."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    WAIT = "WAIT"


@dataclass
class ToolCall:
    """Action requested by a decision.

    function is "set_target_position", "add_to_watchlist" or None.
    """

    function: Optional[str] = None
    args: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"function": self.function, "args": self.args}


@dataclass
class SquadDecision:
    """Output of one squad leader OODA pass."""

    action: DecisionAction
    confidence: float  # 0-100
    regime: MarketRegime
    tool_call: ToolCall
    bull_points: list[str] = field(default_factory=list)
    bear_points: list[str] = field(default_factory=list)
    confluence: int = 0
    timestamp: int = 0
    message: str = ""

    @property
    def is_actionable(self) -> bool:
        """Whether the decision carries a tool call."""
        return self.tool_call.function is not None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "regime": self.regime.value,
            "tool_call": self.tool_call.to_dict(),
            "bull_points": self.bull_points,
            "bear_points": self.bear_points,
            "confluence": self.confluence,
            "timestamp": self.timestamp,
            "message": self.message,
        }


@dataclass
class OracleDecision:
    """Parsed reply of the decision oracle.

    percentage is a 0-1 fraction of the balance (BUY) or of the held
    position (SELL).
    """

    decision: DecisionAction
    percentage: float = 0.0
    reasoning: str = ""
    confidence: float = 0.0
    valid: bool = True  # False when the reply could not be parsed

    @property
    def is_buy(self) -> bool:
        return self.decision == DecisionAction.BUY

    @property
    def is_sell(self) -> bool:
        return self.decision == DecisionAction.SELL

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "decision": self.decision.value,
            "percentage": self.percentage,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "valid": self.valid,
        }
