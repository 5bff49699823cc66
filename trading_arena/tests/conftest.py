"""
Shared pytest fixtures for trading arena tests.
Provides deterministic candle factories, in-memory market data and a mock oracle.
"""
import math

import pytest
from unittest.mock import AsyncMock

from trading_arena.clock import VirtualClock
from trading_arena.database import InMemoryMarketData
from trading_arena.models import OHLCV

# 2024-01-01T00:00:00Z, aligned to every aggregation bucket
START_MS = 1704067200000
MINUTE_MS = 60_000


def make_candles(
    closes,
    start: int = START_MS,
    step_ms: int = MINUTE_MS,
    spread: float = 0.0005,
    symbol: str = "BTCUSDT",
    interval: str = "1m",
    volume: float = 10.0,
):
    """Candles whose open is the previous close and whose wicks extend by `spread`."""
    candles = []
    for i, close in enumerate(closes):
        open_price = closes[i - 1] if i else close
        candles.append(OHLCV(
            timestamp=start + i * step_ms,
            open=open_price,
            high=max(open_price, close) * (1 + spread),
            low=min(open_price, close) * (1 - spread),
            close=close,
            volume=volume,
            symbol=symbol,
            interval=interval,
        ))
    return candles


def sine_closes(count: int, base: float = 100.0, amplitude: float = 2.0, period: int = 250):
    """Oscillating close series (period in candles)."""
    return [base + amplitude * math.sin(2 * math.pi * i / period) for i in range(count)]


@pytest.fixture
def candle_factory():
    """
    Factory fixture for creating 1m candles from a close series.

    Usage:
        def test_example(candle_factory):
            candles = candle_factory([100, 101, 102])
    """
    return make_candles


@pytest.fixture
def market_factory():
    """
    Factory fixture for an InMemoryMarketData reader over a close series.

    Usage:
        def test_example(market_factory):
            reader = market_factory([100.0] * 60)
    """
    def _create(closes, **kwargs):
        return InMemoryMarketData(make_candles(closes, **kwargs))

    return _create


@pytest.fixture
def flat_market():
    """Two days of 1m candles at a constant 40000."""
    return InMemoryMarketData(make_candles([40000.0] * 2880, spread=0.0))


@pytest.fixture
def sine_market():
    """Two days of oscillating 1m candles around 100."""
    return InMemoryMarketData(make_candles(sine_closes(2880)))


@pytest.fixture
def clock():
    """Virtual clock at START_MS."""
    return VirtualClock(START_MS)


@pytest.fixture
def mock_oracle():
    """
    Decision oracle returning a WAIT reply.

    Usage:
        async def test_example(mock_oracle):
            mock_oracle.chat.return_value = '{"decision": "BUY", "percentage": 0.5}'
    """
    oracle = AsyncMock()
    oracle.chat = AsyncMock(
        return_value='{"decision": "WAIT", "percentage": 0, "reasoning": "flat", "confidence": 50}'
    )
    return oracle
