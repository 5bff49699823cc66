"""Virtual Portfolio - simulated spot brokerage account.

Each contestant owns exactly one VirtualPortfolio: a quote-currency cash
balance, long positions with weighted-average cost, an append-only trade
log and an append-only equity snapshot history.

Rule violations (insufficient funds, overselling, bad inputs) never raise:
execute_trade() returns False and leaves the ledger untouched.
"""

import logging
from typing import Optional

from ..analytics.metrics import (
    calculate_max_drawdown,
    calculate_sharpe_ratio,
    calculate_trade_stats,
)
from ..clock import Clock
from ..models import (
    Position,
    PortfolioOverview,
    PortfolioSnapshot,
    TradeRecord,
    TradeSide,
)

# Positions at or below this quantity are removed.
POSITION_EPSILON = 1e-8

# Relative slack allowed when selling "everything" computed from float math.
SELL_TOLERANCE = 1e-9


class VirtualPortfolio:
    """Simulated spot account for a single contestant.

    Example:
        >>> clock = VirtualClock(1704067200000)
        >>> portfolio = VirtualPortfolio(10000, clock)
        >>> portfolio.execute_trade("BTCUSDT", "BUY", 40000, 0.1, "entry")
        True
        >>> portfolio.balance
        6000.0
    """

    def __init__(self, initial_capital: float, clock: Clock, fee_rate: float = 0.0):
        """Initialize ledger.

        Args:
            initial_capital: Starting cash in quote currency
            clock: Time source for trade and snapshot timestamps
            fee_rate: Fee as a fraction of notional, charged on both sides
        """
        if initial_capital <= 0:
            raise ValueError(f"initial_capital must be positive, got: {initial_capital}")
        if not 0.0 <= fee_rate < 1.0:
            raise ValueError(f"fee_rate must be in [0, 1), got: {fee_rate}")

        self.logger = logging.getLogger(__name__)

        self.clock = clock
        self.fee_rate = fee_rate
        self._initial_capital = float(initial_capital)
        self._balance = float(initial_capital)
        self._realized_pnl = 0.0
        self._total_fees = 0.0

        self._positions: dict[str, Position] = {}
        self._last_prices: dict[str, float] = {}
        self._trades: list[TradeRecord] = []
        self._snapshots: list[PortfolioSnapshot] = []

    # ========================================================================
    # Read-only state
    # ========================================================================

    @property
    def initial_capital(self) -> float:
        return self._initial_capital

    @property
    def balance(self) -> float:
        """Available cash in quote currency."""
        return self._balance

    @property
    def realized_pnl(self) -> float:
        """Lifetime realized profit/loss, fees included."""
        return self._realized_pnl

    @property
    def total_fees(self) -> float:
        return self._total_fees

    @property
    def positions(self) -> dict[str, Position]:
        """Copy of open positions keyed by symbol."""
        return {
            symbol: Position(
                symbol=p.symbol,
                quantity=p.quantity,
                avg_price=p.avg_price,
                current_price=p.current_price,
                opened_at=p.opened_at,
            )
            for symbol, p in self._positions.items()
        }

    @property
    def trade_count(self) -> int:
        return len(self._trades)

    @property
    def trades(self) -> tuple[TradeRecord, ...]:
        return tuple(self._trades)

    @property
    def snapshots(self) -> tuple[PortfolioSnapshot, ...]:
        """Snapshot history, oldest first."""
        return tuple(self._snapshots)

    def get_position(self, symbol: str) -> Optional[Position]:
        """Get open position for symbol.

        Returns:
            Copy of the position, or None if flat
        """
        position = self._positions.get(symbol)
        if position is None:
            return None
        return self.positions[symbol]

    def get_last_price(self, symbol: str) -> Optional[float]:
        """Last mark or fill price seen for symbol."""
        return self._last_prices.get(symbol)

    def get_trades_incremental(self, start_index: int = 0) -> list[TradeRecord]:
        """Trades recorded at or after start_index.

        Args:
            start_index: Number of trades already consumed by the caller

        Returns:
            New trade records, oldest first
        """
        if start_index < 0:
            start_index = 0
        return self._trades[start_index:]

    # ========================================================================
    # Mutations
    # ========================================================================

    def execute_trade(
        self,
        symbol: str,
        side: str | TradeSide,
        price: float,
        quantity: float,
        reason: str = "",
    ) -> bool:
        """Execute a market trade against the ledger.

        Args:
            symbol: Trading symbol
            side: "BUY" or "SELL"
            price: Fill price
            quantity: Base currency quantity
            reason: Free-text audit note

        Returns:
            True if executed, False if rejected (ledger unchanged)
        """
        try:
            side = TradeSide(side.upper() if isinstance(side, str) else side)
        except ValueError:
            self.logger.warning("trade_rejected", extra={"reason": "invalid_side", "side": side})
            return False

        if not price or price <= 0 or not quantity or quantity <= 0:
            self.logger.debug(
                "trade_rejected",
                extra={"reason": "non_positive_input", "price": price, "quantity": quantity},
            )
            return False

        if side == TradeSide.BUY:
            return self._buy(symbol, price, quantity, reason)
        return self._sell(symbol, price, quantity, reason)

    def _buy(self, symbol: str, price: float, quantity: float, reason: str) -> bool:
        notional = price * quantity
        fee = notional * self.fee_rate

        if notional + fee > self._balance:
            self.logger.debug(
                "trade_rejected",
                extra={
                    "reason": "insufficient_funds",
                    "symbol": symbol,
                    "required": notional + fee,
                    "balance": self._balance,
                },
            )
            return False

        self._balance -= notional + fee
        self._total_fees += fee

        existing = self._positions.get(symbol)
        if existing is None:
            self._positions[symbol] = Position(
                symbol=symbol,
                quantity=quantity,
                avg_price=price,
                current_price=price,
                opened_at=self.clock.now(),
            )
        else:
            new_qty = existing.quantity + quantity
            existing.avg_price = (existing.avg_price * existing.quantity + notional) / new_qty
            existing.quantity = new_qty
            existing.current_price = price

        self._last_prices[symbol] = price
        self._record(symbol, TradeSide.BUY, price, quantity, notional, fee, reason)
        return True

    def _sell(self, symbol: str, price: float, quantity: float, reason: str) -> bool:
        position = self._positions.get(symbol)
        if position is None:
            self.logger.debug("trade_rejected", extra={"reason": "no_position", "symbol": symbol})
            return False

        if quantity > position.quantity * (1 + SELL_TOLERANCE):
            self.logger.debug(
                "trade_rejected",
                extra={
                    "reason": "oversell",
                    "symbol": symbol,
                    "requested": quantity,
                    "held": position.quantity,
                },
            )
            return False

        quantity = min(quantity, position.quantity)
        notional = price * quantity
        fee = notional * self.fee_rate
        realized = (price - position.avg_price) * quantity - fee

        self._balance += notional - fee
        self._total_fees += fee
        self._realized_pnl += realized

        position.quantity -= quantity
        position.current_price = price
        if position.quantity <= POSITION_EPSILON:
            del self._positions[symbol]

        self._last_prices[symbol] = price
        self._record(symbol, TradeSide.SELL, price, quantity, notional, fee, reason, realized)
        return True

    def _record(
        self,
        symbol: str,
        side: TradeSide,
        price: float,
        quantity: float,
        notional: float,
        fee: float,
        reason: str,
        realized_pnl: Optional[float] = None,
    ) -> None:
        trade = TradeRecord(
            id=f"trade-{len(self._trades) + 1}",
            symbol=symbol,
            side=side,
            price=price,
            quantity=quantity,
            total=notional,
            timestamp=self.clock.now(),
            reason=reason,
            fee=fee,
            realized_pnl=realized_pnl,
        )
        self._trades.append(trade)

        self.logger.debug(
            "trade_executed",
            extra={
                "trade_id": trade.id,
                "symbol": symbol,
                "side": side.value,
                "price": price,
                "quantity": quantity,
                "balance": self._balance,
            },
        )

    def update_price(self, symbol: str, price: float) -> None:
        """Mark a symbol to market.

        Positions are re-marked; without a position this only remembers the
        price.
        """
        if not price or price <= 0:
            return

        self._last_prices[symbol] = price
        position = self._positions.get(symbol)
        if position is not None:
            position.current_price = price

    # ========================================================================
    # Valuation
    # ========================================================================

    def get_unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self._positions.values())

    def get_total_equity(self) -> float:
        """Cash plus mark-to-market value of every position."""
        return self._balance + sum(p.market_value for p in self._positions.values())

    def take_snapshot(self) -> PortfolioSnapshot:
        """Append the current valuation to the snapshot history."""
        snapshot = PortfolioSnapshot(
            timestamp=self.clock.now(),
            total_equity=self.get_total_equity(),
            balance=self._balance,
            unrealized_pnl=self.get_unrealized_pnl(),
            position_count=len(self._positions),
        )
        self._snapshots.append(snapshot)
        return snapshot

    def get_overview_basic(self) -> PortfolioOverview:
        """Overview without snapshot metrics. Cheap enough to call per tick."""
        equity = self.get_total_equity()
        total_return = equity - self._initial_capital

        return PortfolioOverview(
            initial_capital=self._initial_capital,
            balance=self._balance,
            total_equity=equity,
            total_return=total_return,
            total_return_pct=total_return / self._initial_capital * 100,
            realized_pnl=self._realized_pnl,
            unrealized_pnl=self.get_unrealized_pnl(),
            total_fees=self._total_fees,
            trade_count=len(self._trades),
            positions=list(self.positions.values()),
        )

    def get_overview(self) -> PortfolioOverview:
        """Full overview including Sharpe ratio, drawdown and win/loss stats."""
        overview = self.get_overview_basic()
        equities = [s.total_equity for s in self._snapshots]

        overview.sharpe_ratio = calculate_sharpe_ratio(equities)
        overview.max_drawdown = calculate_max_drawdown(equities)

        stats = calculate_trade_stats(self._trades)
        overview.win_rate = stats["win_rate"]
        overview.avg_win = stats["avg_win"]
        overview.avg_loss = stats["avg_loss"]
        overview.profit_factor = stats["profit_factor"]

        return overview

    def __repr__(self) -> str:
        return (
            f"VirtualPortfolio(balance={self._balance:.2f}, "
            f"positions={len(self._positions)}, trades={len(self._trades)})"
        )
