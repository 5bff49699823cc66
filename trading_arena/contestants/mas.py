"""Multi-agent squad contestant.

Wires a TechnicalAnalystAgent to a SquadLeaderAgent sharing the race clock.
Every 5 simulated minutes the analyst turns the latest candle into a signal
and the leader decides on it; a ``set_target_position`` tool call from the
leader is translated into one BUY or SELL against this contestant's ledger.
"""

from typing import Optional

from ..agents import SquadLeaderAgent, TechnicalAnalystAgent
from ..clock import Clock
from ..database import MarketDataReader, latest_candle
from ..models import SquadDecision
from .base import Contestant

ANALYSIS_CADENCE_MS = 5 * 60 * 1000
MIN_REBALANCE_NOTIONAL = 10.0


class MASContestant(Contestant):
    """Technical analyst + squad leader.

    Example:
        >>> mas = MASContestant("mas-squad", "MAS Squad", reader, "BTCUSDT")
        >>> await mas.initialize(10000, clock)
    """

    kind = "mas"
    log_prefix = "[MAS] "

    def __init__(
        self,
        contestant_id: str,
        name: str,
        reader: MarketDataReader,
        symbol: str,
        confidence_threshold: float = 70.0,
    ):
        super().__init__(contestant_id, name, reader, symbol)
        self.confidence_threshold = confidence_threshold
        self.analyst: Optional[TechnicalAnalystAgent] = None
        self.leader: Optional[SquadLeaderAgent] = None

    async def initialize(self, initial_capital: float, clock: Clock, fee_rate: float = 0.0) -> None:
        await super().initialize(initial_capital, clock, fee_rate)
        self.analyst = TechnicalAnalystAgent(f"{self.contestant_id}-tech", clock, self.reader)
        self.leader = SquadLeaderAgent(
            f"{self.contestant_id}-leader",
            clock,
            executor=self.execute_decision,
            confidence_threshold=self.confidence_threshold,
        )

    async def on_tick(self) -> None:
        now = self.clock.now()

        if now % ANALYSIS_CADENCE_MS == 0:
            candle = await latest_candle(self.reader, self.symbol, "1m", now)
            if candle is not None:
                analysis = await self.analyst.execute({"symbol": self.symbol, "price": candle.close})
                signal = analysis["signal"]
                if signal is not None:
                    result = await self.leader.execute({"signal": signal})
                    decision = result["decision"]
                    self.log(
                        f"{decision.action.value} ({decision.confidence:.0f}%): {decision.message}",
                        level="debug",
                        action=decision.action.value,
                        confidence=decision.confidence,
                        executed=result["executed"],
                    )

        self.portfolio.take_snapshot()

    async def execute_decision(self, decision: SquadDecision) -> None:
        """Move exposure toward equity x target_percent.

        Moves smaller than MIN_REBALANCE_NOTIONAL are ignored.
        """
        if decision.tool_call.function != "set_target_position":
            return

        args = decision.tool_call.args
        symbol = args.get("symbol") or self.symbol
        target_percent = float(args.get("target_percent", 0.0))
        reason = args.get("reason", "")

        candle = await latest_candle(self.reader, symbol, "1m", self.clock.now())
        if candle is None:
            return

        price = candle.close
        self.portfolio.update_price(symbol, price)

        target_value = self.portfolio.get_total_equity() * target_percent
        position = self.portfolio.get_position(symbol)
        current_value = position.quantity * price if position else 0.0
        diff = target_value - current_value

        if diff > MIN_REBALANCE_NOTIONAL:
            quantity = diff / price
            if self.portfolio.execute_trade(symbol, "BUY", price, quantity, reason):
                self.log(f"BUY {quantity:.6f} {symbol} at {price:.2f}", price=price, quantity=quantity)
        elif diff < -MIN_REBALANCE_NOTIONAL:
            quantity = abs(diff) / price
            if self.portfolio.execute_trade(symbol, "SELL", price, quantity, reason):
                self.log(f"SELL {quantity:.6f} {symbol} at {price:.2f}", price=price, quantity=quantity)
