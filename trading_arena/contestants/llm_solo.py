"""Oracle-driven ("LLM solo") contestant.

Each tick it summarizes the last 24h of 1m candles into a prompt, asks the
decision oracle for ``{decision, percentage, reasoning, confidence}`` and
acts on the answer:

- BUY spends balance x percentage (ignored at or below 10)
- SELL sells held quantity x percentage
- WAIT, or any reply that cannot be parsed, does nothing

Oracle failures are logged and the race moves on.
"""

from typing import Optional

from ..database import MarketDataReader
from ..exceptions import OracleError
from ..llm import AccountState, DecisionOracle, build_prompt, parse_decision, system_prompt_for
from ..models import DecisionAction, OracleDecision
from ..validation import validate_intelligence_level
from .base import Contestant

LOOKBACK_CANDLES = 1440
MIN_BUY_NOTIONAL = 10.0
PROMPT_LOG_CHARS = 1000


class LLMSoloContestant(Contestant):
    """Single-oracle contestant.

    Args:
        oracle: Anything with ``async chat(prompt, system_prompt) -> str``
        intelligence_level: lite | indicator | strategy | scalper
        custom_system_prompt: Replaces the level's system prompt
        include_daily: Add the daily-trend section (strategy level)
    """

    kind = "llm-solo"

    def __init__(
        self,
        contestant_id: str,
        name: str,
        reader: MarketDataReader,
        symbol: str,
        oracle: DecisionOracle,
        intelligence_level: str = "lite",
        custom_system_prompt: Optional[str] = None,
        include_daily: bool = False,
    ):
        super().__init__(contestant_id, name, reader, symbol)
        self.oracle = oracle
        self.intelligence_level = validate_intelligence_level(intelligence_level)
        self.custom_system_prompt = custom_system_prompt or ""
        self.include_daily = include_daily
        self.log_prefix = f"[LLMSolo-{self.intelligence_level}] "

    @property
    def system_prompt(self) -> str:
        return system_prompt_for(self.intelligence_level, self.custom_system_prompt)

    def account_state(self) -> AccountState:
        position = self.portfolio.get_position(self.symbol)
        return AccountState(
            balance=self.portfolio.balance,
            total_equity=self.portfolio.get_total_equity(),
            quantity=position.quantity if position else 0.0,
            avg_price=position.avg_price if position else 0.0,
        )

    async def on_tick(self) -> None:
        now = self.clock.now()

        candles = await self.reader.query_candles(
            self.symbol, "1m", end=now, limit=LOOKBACK_CANDLES
        )
        if not candles:
            self.log("No market data", level="debug")
            return

        price = candles[-1].close
        account = self.account_state()
        self.log(
            f"Price {price:.2f} | balance {account.balance:.2f} | equity {account.total_equity:.2f}",
            level="debug",
            type="status",
            price=price,
            quantity=round(account.quantity, 8),
            balance=round(account.balance, 2),
            total_equity=round(account.total_equity, 2),
        )

        prompt = build_prompt(
            self.intelligence_level, self.symbol, candles, account, self.include_daily
        )

        try:
            reply = await self.oracle.chat(prompt, self.system_prompt)
        except OracleError as e:
            self.log(f"Oracle error: {e}", level="error", type="error")
        else:
            self.apply_reply(reply, price, prompt)

        self.portfolio.take_snapshot()

    def apply_reply(self, reply: str, price: float, prompt: str = "") -> OracleDecision:
        """Parse an oracle reply and trade on it."""
        decision = parse_decision(reply)
        if not decision.valid:
            self.log(
                "Failed to parse LLM response",
                level="warning",
                type="error",
                raw=reply,
                detail=decision.reasoning,
            )
            return decision

        account = self.account_state()
        self.log(
            f"{decision.decision.value} {decision.percentage:.0%}: {decision.reasoning}",
            type="decision",
            decision=decision.decision.value,
            percentage=decision.percentage,
            reasoning=decision.reasoning,
            confidence=decision.confidence,
            price=price,
            quantity=round(account.quantity, 8),
            balance=round(account.balance, 2),
            total_equity=round(account.total_equity, 2),
            prompt=prompt[:PROMPT_LOG_CHARS],
            response=reply,
        )

        if decision.decision == DecisionAction.BUY and decision.percentage > 0:
            amount = self.portfolio.balance * decision.percentage
            if amount > MIN_BUY_NOTIONAL:
                self.portfolio.execute_trade(
                    self.symbol, "BUY", price, amount / price, decision.reasoning
                )
        elif decision.decision == DecisionAction.SELL and decision.percentage > 0:
            quantity = self.held_quantity()
            if quantity > 0:
                self.portfolio.execute_trade(
                    self.symbol, "SELL", price, quantity * decision.percentage, decision.reasoning
                )

        return decision
