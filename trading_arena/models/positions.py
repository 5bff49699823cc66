"""Position, trade and portfolio models.

Spot-only long positions held in a simulated ledger. Quantities are in base
currency units (e.g. BTC), amounts in quote currency (e.g. USDT).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class TradeSide(str, Enum):
    """Trade side enumeration."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class Position:
    """Open long position in one symbol.

    avg_price is the weighted-average cost of every BUY merged into the
    position; SELLs reduce quantity but never change it.
    """

    symbol: str
    quantity: float
    avg_price: float
    current_price: float
    opened_at: int = 0  # Unix timestamp in milliseconds

    @property
    def market_value(self) -> float:
        """Current position value in quote currency."""
        return self.quantity * self.current_price

    @property
    def cost_basis(self) -> float:
        return self.quantity * self.avg_price

    @property
    def unrealized_pnl(self) -> float:
        """Profit/loss at the current mark."""
        return (self.current_price - self.avg_price) * self.quantity

    @property
    def unrealized_pnl_pct(self) -> float:
        """Profit/loss percentage relative to average cost."""
        if self.avg_price <= 0:
            return 0.0
        return (self.current_price - self.avg_price) / self.avg_price * 100

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "quantity": self.quantity,
            "avg_price": self.avg_price,
            "current_price": self.current_price,
            "market_value": self.market_value,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_pct": self.unrealized_pnl_pct,
            "opened_at": self.opened_at,
        }


@dataclass(frozen=True)
class TradeRecord:
    """Executed trade. Records are append-only and never modified."""

    id: str
    symbol: str
    side: TradeSide
    price: float
    quantity: float
    total: float  # Notional (price * quantity), fee excluded
    timestamp: int
    reason: str = ""
    fee: float = 0.0
    realized_pnl: Optional[float] = None  # SELL only

    @property
    def is_win(self) -> bool:
        """Whether this SELL closed at a profit."""
        return self.realized_pnl is not None and self.realized_pnl > 0

    @property
    def datetime(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    def to_dict(self) -> dict:
        """Convert to dictionary for the progress stream and reports."""
        data = {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "price": self.price,
            "quantity": self.quantity,
            "total": self.total,
            "fee": self.fee,
            "timestamp": self.timestamp,
            "reason": self.reason,
        }
        if self.realized_pnl is not None:
            data["pnl"] = self.realized_pnl
        return data


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Point-in-time portfolio valuation."""

    timestamp: int
    total_equity: float
    balance: float
    unrealized_pnl: float
    position_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp,
            "total_equity": self.total_equity,
            "balance": self.balance,
            "unrealized_pnl": self.unrealized_pnl,
            "position_count": self.position_count,
        }


@dataclass
class PortfolioOverview:
    """Read-only projection of a ledger's state and performance."""

    initial_capital: float
    balance: float
    total_equity: float
    total_return: float  # Absolute, quote currency
    total_return_pct: float
    realized_pnl: float
    unrealized_pnl: float
    total_fees: float
    trade_count: int
    positions: list[Position] = field(default_factory=list)
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0  # Percent
    win_rate: float = 0.0  # Percent of closing SELLs with positive P&L
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "initial_capital": self.initial_capital,
            "balance": self.balance,
            "total_equity": self.total_equity,
            "total_return": self.total_return,
            "total_return_pct": self.total_return_pct,
            "realized_pnl": self.realized_pnl,
            "unrealized_pnl": self.unrealized_pnl,
            "total_fees": self.total_fees,
            "trade_count": self.trade_count,
            "positions": [p.to_dict() for p in self.positions],
            "sharpe_ratio": self.sharpe_ratio,
            "max_drawdown": self.max_drawdown,
            "win_rate": self.win_rate,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
            "profit_factor": self.profit_factor,
        }
