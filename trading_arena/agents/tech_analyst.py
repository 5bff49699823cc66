"""TechnicalAnalystAgent - technical signal producer.

First agent of the squad. Reads recent 1m candles up to the simulated now
and condenses RSI, moving averages and MACD into one TechnicalSignal.
It never gives trade advice; that is the squad leader's job.
"""

from typing import Any

from ..clock import Clock
from ..database import MarketDataReader
from ..indicators import calculate_macd, calculate_rsi, calculate_sma
from ..models import SignalImportance, SignalType, TechnicalSignal
from .base_agent import BaseAgent


class TechnicalAnalystAgent(BaseAgent):
    """Technical analyst - turns candles into signals.

    Classification of the latest close:
    - RSI above 70: OVERBOUGHT (bearish), critical above 80
    - RSI below 30: OVERSOLD
    - Close above SMA25 with SMA7 > SMA25 and a positive MACD histogram:
      BREAKOUT when the close clears the prior lookback high, else TREND_CONFIRM
    - The mirrored bearish stack: REVERSAL
    - Anything else: NEUTRAL
    """

    def __init__(
        self,
        agent_id: str,
        clock: Clock,
        reader: MarketDataReader,
        interval: str = "1m",
        lookback: int = 120,
    ):
        super().__init__(agent_id, clock)
        self.reader = reader
        self.interval = interval
        self.lookback = lookback

    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        """Analyze the market for the symbol in the context.

        Args:
            context: Must contain "symbol"; "price" overrides the latest close

        Returns:
            {"signal": TechnicalSignal} or {"signal": None} without data
        """
        symbol = context["symbol"]
        now = self.clock.now()

        candles = await self.reader.query_candles(
            symbol, self.interval, end=now, limit=self.lookback
        )
        if not candles:
            self.log_decision("No candles available for analysis", level="debug", symbol=symbol)
            return {"signal": None}

        closes = [c.close for c in candles]
        price = float(context.get("price") or closes[-1])

        rsi = calculate_rsi(closes, 14)
        sma7 = calculate_sma(closes, 7)
        sma25 = calculate_sma(closes, 25)
        macd = calculate_macd(closes)
        prior_high = max((c.high for c in candles[:-1]), default=price)

        indicators = {
            "rsi": rsi,
            "sma7": sma7,
            "sma25": sma25,
            "macd": macd.to_dict(),
        }

        signal_type = SignalType.NEUTRAL
        trend = "flat"
        factors = 0
        description = f"RSI {rsi:.1f}, no clear setup"

        bullish_stack = [price > sma25, sma7 > sma25, macd.histogram > 0]
        bearish_stack = [price < sma25, sma7 < sma25, macd.histogram < 0]

        if rsi > 70:
            signal_type = SignalType.OVERBOUGHT
            trend = "up"
            factors = 3 if rsi > 80 else 2
            description = f"RSI overbought at {rsi:.1f}"
        elif rsi < 30:
            signal_type = SignalType.OVERSOLD
            trend = "down"
            factors = 3 if rsi < 20 else 2
            description = f"RSI oversold at {rsi:.1f}"
        elif all(bullish_stack):
            factors = 3
            trend = "up"
            if price > prior_high:
                signal_type = SignalType.BREAKOUT
                description = f"Close {price:.2f} broke the {len(candles)}-candle high {prior_high:.2f}"
            else:
                signal_type = SignalType.TREND_CONFIRM
                description = "Price above SMA25 with bullish MA stack and MACD"
        elif all(bearish_stack):
            factors = 3
            trend = "down"
            signal_type = SignalType.REVERSAL
            description = "Price below SMA25 with bearish MA stack and MACD"
        else:
            ups, downs = sum(bullish_stack), sum(bearish_stack)
            factors = max(ups, downs) - 1
            if ups > downs:
                trend = "up"
            elif downs > ups:
                trend = "down"

        strength = max(factors, 0) / 3
        importance = self._importance(signal_type, strength, rsi)

        signal = TechnicalSignal(
            symbol=symbol,
            signal_type=signal_type,
            trend=trend,
            strength=strength,
            importance=importance,
            price=price,
            timestamp=now,
            description=description,
            indicators={**indicators, "trend": trend},
        )

        self.log_decision(
            "Technical signal produced",
            level="debug",
            symbol=symbol,
            signal_type=signal_type.value,
            importance=importance.value,
            strength=round(strength, 3),
        )

        return {"signal": signal}

    @staticmethod
    def _importance(signal_type: SignalType, strength: float, rsi: float) -> SignalImportance:
        if signal_type == SignalType.OVERBOUGHT and rsi > 80:
            return SignalImportance.CRITICAL
        if signal_type == SignalType.NEUTRAL:
            return SignalImportance.LOW
        if strength >= 1.0:
            return SignalImportance.HIGH
        return SignalImportance.MEDIUM
