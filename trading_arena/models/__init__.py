"""Trading arena data models module.

Candles, positions, trades, snapshots, signals and decisions shared by
every contestant.
"""

from .market_data import OHLCV
from .positions import (
    Position,
    TradeSide,
    TradeRecord,
    PortfolioSnapshot,
    PortfolioOverview,
)
from .signals import TechnicalSignal, SignalType, SignalImportance
from .decision import DecisionAction, ToolCall, SquadDecision, OracleDecision
from .regime import MarketRegime, RegimeDetector

__all__ = [
    # Market data
    "OHLCV",
    # Positions
    "Position",
    "TradeSide",
    "TradeRecord",
    "PortfolioSnapshot",
    "PortfolioOverview",
    # Signals
    "TechnicalSignal",
    "SignalType",
    "SignalImportance",
    # Decisions
    "DecisionAction",
    "ToolCall",
    "SquadDecision",
    "OracleDecision",
    # Regime
    "MarketRegime",
    "RegimeDetector",
]
