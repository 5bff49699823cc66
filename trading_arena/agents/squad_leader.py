"""SquadLeaderAgent - decision maker of the multi-agent squad.

Runs one observe-orient-decide-act pass per incoming signal:

1. Observe: signals for the symbol from the last hour (at most 20)
2. Orient: market regime, bull and bear arguments, confluence
3. Decide: confidence score -> BUY / SELL / WAIT / HOLD with a tool call
4. Act: hand the decision to the executor when confidence clears the threshold
"""

from collections import deque
from typing import Any, Awaitable, Callable, Optional

from ..clock import Clock
from ..models import (
    DecisionAction,
    MarketRegime,
    RegimeDetector,
    SignalImportance,
    SquadDecision,
    TechnicalSignal,
    ToolCall,
)
from .base_agent import BaseAgent

DecisionExecutor = Callable[[SquadDecision], Awaitable[None]]

SIGNAL_WINDOW_MS = 60 * 60 * 1000
MAX_SIGNALS = 20


class SquadLeaderAgent(BaseAgent):
    """Squad leader - scores signals and issues tool calls.

    Confidence starts at 50, moves +/-15 with a trending regime, +/-10 per
    net bull/bear argument and +10 or +20 for single or multi-source
    confluence, clamped to [0, 100].

    Example:
        >>> leader = SquadLeaderAgent("mas-leader", clock, executor=execute)
        >>> result = await leader.execute({"symbol": "BTCUSDT", "signal": signal})
        >>> result["decision"].action
        <DecisionAction.HOLD: 'HOLD'>
    """

    def __init__(
        self,
        agent_id: str,
        clock: Clock,
        executor: Optional[DecisionExecutor] = None,
        confidence_threshold: float = 70.0,
        auto_execute: bool = True,
        history_size: int = 500,
    ):
        super().__init__(agent_id, clock)
        self.executor = executor
        self.confidence_threshold = confidence_threshold
        self.auto_execute = auto_execute
        self._signals: deque[tuple[str, TechnicalSignal]] = deque(maxlen=history_size)
        self.decisions: list[SquadDecision] = []
        self.watchlist: set[str] = set()

    def observe(self, signal: TechnicalSignal, source: str = "technical") -> None:
        """Record a signal without deciding on it."""
        self._signals.append((source, signal))

    def collect_related(self, trigger: TechnicalSignal) -> list[tuple[str, TechnicalSignal]]:
        """Signals for the trigger's symbol from the last hour, trigger included."""
        since = self.clock.now() - SIGNAL_WINDOW_MS
        recent = [item for item in self._signals if item[1].timestamp >= since][-MAX_SIGNALS:]
        related = [item for item in recent if item[1].symbol == trigger.symbol]
        if not any(signal is trigger for _, signal in related):
            related.insert(0, ("technical", trigger))
        return related

    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        """Decide on the signal in the context.

        Args:
            context: Must contain "signal" (TechnicalSignal); optional
                "source" (default "technical") and "risk_veto" (bool)

        Returns:
            {"decision": SquadDecision, "executed": bool}
        """
        trigger: TechnicalSignal = context["signal"]
        source = context.get("source", "technical")
        self.observe(trigger, source)

        related = self.collect_related(trigger)
        decision = self.decide(related, trigger.symbol, risk_veto=context.get("risk_veto", False))
        self.decisions.append(decision)

        self.log_decision(
            "Squad decision",
            symbol=trigger.symbol,
            action=decision.action.value,
            confidence=decision.confidence,
            regime=decision.regime.value,
            bull=len(decision.bull_points),
            bear=len(decision.bear_points),
        )

        executed = False
        if self.auto_execute and decision.confidence >= self.confidence_threshold:
            await self.execute_decision(decision)
            executed = True

        return {"decision": decision, "executed": executed}

    def decide(
        self,
        related: list[tuple[str, TechnicalSignal]],
        symbol: str,
        risk_veto: bool = False,
    ) -> SquadDecision:
        now = self.clock.now()
        signals = [signal for _, signal in related]

        if risk_veto:
            return SquadDecision(
                action=DecisionAction.HOLD,
                confidence=0.0,
                regime=MarketRegime.EXTREME_RISK,
                tool_call=ToolCall(),
                timestamp=now,
                message="Risk veto: trading paused",
            )

        regime = RegimeDetector.detect_from_signals(signals)

        bull_points = [
            f"{s.description} (strength {s.strength * 100:.0f}%)" for s in signals if s.is_bullish
        ]
        bear_points = [s.description for s in signals if s.is_bearish]

        important = (SignalImportance.HIGH, SignalImportance.CRITICAL)
        confluence = len({
            source for source, s in related if s.importance in important
        })
        confluence_weight = 2 if confluence >= 2 else 1

        bull, bear = len(bull_points), len(bear_points)
        confidence = 50.0
        if regime == MarketRegime.TRENDING_UP:
            confidence += 15
        elif regime == MarketRegime.TRENDING_DOWN:
            confidence -= 15
        confidence += (bull - bear) * 10
        confidence += confluence_weight * 10
        confidence = max(0.0, min(100.0, confidence))

        if confidence >= 80 and bull > bear:
            action = DecisionAction.BUY
            tool_call = ToolCall(
                function="set_target_position",
                args={
                    "symbol": symbol,
                    "target_percent": 0.2 if confidence >= 85 else 0.1,
                    "reason": "OODA decision",
                },
            )
            message = f"{symbol}: bullish confluence, opening position"
        elif confidence <= 30 or bear > bull + 2:
            action = DecisionAction.SELL
            confidence = 100 - confidence
            tool_call = ToolCall(
                function="set_target_position",
                args={"symbol": symbol, "target_percent": 0.0, "reason": "Risk reduction"},
            )
            message = f"{symbol}: risk building up, reducing exposure"
        elif 60 <= confidence < 80:
            action = DecisionAction.WAIT
            tool_call = ToolCall(
                function="add_to_watchlist",
                args={"symbol": symbol, "reason": "Signal emerging, waiting for confirmation"},
            )
            message = f"{symbol}: early signal, added to watchlist"
        else:
            action = DecisionAction.HOLD
            tool_call = ToolCall()
            message = f"{symbol}: no clear opportunity, holding"

        return SquadDecision(
            action=action,
            confidence=confidence,
            regime=regime,
            tool_call=tool_call,
            bull_points=bull_points,
            bear_points=bear_points,
            confluence=confluence,
            timestamp=now,
            message=message,
        )

    async def execute_decision(self, decision: SquadDecision) -> None:
        """Act on a decision's tool call.

        Watchlist calls are handled here; everything else goes to the executor.
        """
        function = decision.tool_call.function
        if function is None:
            return

        if function == "add_to_watchlist":
            self.watchlist.add(decision.tool_call.args.get("symbol", ""))
            return

        if self.executor is None:
            self.log_decision(
                "No executor configured, dropping tool call",
                level="warning",
                function=function,
            )
            return

        await self.executor(decision)
