"""
Tests for the periodic-investment (DCA) contestant.
"""

import pytest

from trading_arena.clock import VirtualClock
from trading_arena.contestants import DCAContestant
from trading_arena.database import InMemoryMarketData
from trading_arena.exceptions import RaceStateError
from trading_arena.validation import ValidationError

START_MS = 1704067200000
MINUTE_MS = 60_000


async def _dca(reader, capital=10000, invest_amount=1000, interval_minutes=60):
    clock = VirtualClock(START_MS)
    dca = DCAContestant("dca-bot", "DCA", reader, "BTCUSDT", invest_amount, interval_minutes)
    await dca.initialize(capital, clock)
    return dca, clock


@pytest.mark.asyncio
@pytest.mark.unit
async def test_first_tick_invests(market_factory):
    dca, _ = await _dca(market_factory([40000.0] * 180))

    await dca.on_tick()

    assert dca.portfolio.balance == pytest.approx(9000)
    assert dca.held_quantity() == pytest.approx(1000 / 40000)
    assert dca.portfolio.trades[0].reason == "Periodic investment"
    assert dca.last_invest_time == START_MS


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invests_once_per_interval(market_factory):
    dca, clock = await _dca(market_factory([40000.0] * 180))

    for minutes in (0, 30, 59, 60, 90, 120):
        clock.set(START_MS + minutes * MINUTE_MS)
        await dca.on_tick()

    assert [t.timestamp for t in dca.portfolio.trades] == [
        START_MS,
        START_MS + 60 * MINUTE_MS,
        START_MS + 120 * MINUTE_MS,
    ]
    assert len(dca.portfolio.snapshots) == 6


@pytest.mark.asyncio
@pytest.mark.unit
async def test_logs_are_buffered_and_drained(market_factory):
    dca, _ = await _dca(market_factory([40000.0] * 10))

    await dca.on_tick()
    logs = dca.get_logs()

    assert len(logs) == 1
    assert logs[0]["message"].startswith("Invested 1000.00")
    assert logs[0]["timestamp"] == START_MS
    assert dca.get_logs() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_investment_still_moves_schedule(market_factory):
    dca, _ = await _dca(market_factory([40000.0] * 10), capital=500)

    await dca.on_tick()

    assert dca.portfolio.trade_count == 0
    assert dca.last_invest_time == START_MS
    assert "failed" in dca.get_logs()[0]["message"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_price_no_trade_but_snapshot():
    dca, _ = await _dca(InMemoryMarketData())

    await dca.on_tick()

    assert dca.portfolio.trade_count == 0
    assert dca.last_invest_time == 0
    assert len(dca.portfolio.snapshots) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_incremental_trades_as_dicts(market_factory):
    dca, clock = await _dca(market_factory([40000.0] * 180))

    await dca.on_tick()
    clock.set(START_MS + 60 * MINUTE_MS)
    await dca.on_tick()

    assert [t["id"] for t in dca.get_trades()] == ["trade-1", "trade-2"]
    assert [t["id"] for t in dca.get_trades(1)] == ["trade-2"]
    assert dca.get_trades(1)[0]["side"] == "BUY"


@pytest.mark.unit
def test_uninitialized_contestant_has_no_portfolio():
    dca = DCAContestant("dca-bot", "DCA", InMemoryMarketData(), "BTCUSDT", 100)

    with pytest.raises(RaceStateError):
        dca.portfolio


@pytest.mark.unit
@pytest.mark.parametrize("amount,interval", [(0, 60), (-5, 60), (100, 0), (100, 1.5)])
def test_invalid_settings_rejected(amount, interval):
    with pytest.raises(ValidationError):
        DCAContestant("dca-bot", "DCA", InMemoryMarketData(), "BTCUSDT", amount, interval)
