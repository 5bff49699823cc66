"""
Tests for the pivot grid contestant.
Covers level construction, risk controls, the buy cooldown and recalculation.
"""

import pytest

from trading_arena.clock import VirtualClock
from trading_arena.contestants import GridConfig, GridContestant, GridState, build_levels
from trading_arena.database import InMemoryMarketData
from trading_arena.exceptions import InvalidConfigValueError

START_MS = 1704067200000
MINUTE_MS = 60_000
SYMBOL = "BTCUSDT"


def _state(buys=(90.0, 95.0, 99.0), sells=(120.0, 115.0, 110.0)):
    return GridState(
        buy_levels=tuple(buys),
        sell_levels=tuple(sells),
        buy_triggered=tuple(False for _ in buys),
        sell_triggered=tuple(False for _ in sells),
    )


async def _grid(reader=None, config=None, capital=10000):
    grid = GridContestant("grid-bot", "Grid", reader or InMemoryMarketData(), SYMBOL, config)
    clock = VirtualClock(START_MS)
    await grid.initialize(capital, clock)
    return grid, clock


# === Level construction ===


@pytest.mark.unit
def test_build_levels_pads_outward_from_farthest_level():
    buys, sells = build_levels([95.0, 97.0], [105.0], price=100.0, grid_levels=3)

    assert buys == pytest.approx([95.0 * 0.985, 95.0, 97.0])
    assert sells == pytest.approx([105.0 * 1.015 ** 2, 105.0 * 1.015, 105.0])


@pytest.mark.unit
def test_build_levels_filters_levels_too_close_to_price():
    buys, sells = build_levels([99.95, 98.0], [100.05, 102.0], price=100.0, grid_levels=1)

    assert buys == [98.0]
    assert sells == [102.0]


@pytest.mark.unit
def test_build_levels_keeps_levels_nearest_price():
    buys, sells = build_levels([90.0, 91.0, 92.0, 93.0], [110.0, 109.0, 108.0, 107.0], 100.0, 3)

    assert buys == [91.0, 92.0, 93.0]
    assert sells == [109.0, 108.0, 107.0]


@pytest.mark.unit
def test_build_levels_synthesizes_empty_sides():
    buys, sells = build_levels([], [], price=100.0, grid_levels=2)

    assert buys == pytest.approx([100 * 0.985 ** 3, 100 * 0.985 ** 2])
    assert sells == pytest.approx([100 * 1.015 ** 3, 100 * 1.015 ** 2])


# === Config and state ===


@pytest.mark.unit
def test_grid_config_from_settings():
    config = GridConfig.from_settings({"gridLevels": 5, "windowDays": 2, "volatilityMax": None})

    assert config.grid_levels == 5
    assert config.window_days == 2
    assert config.volatility_max == 50.0
    assert config.window_ms == 2 * 86_400_000


@pytest.mark.unit
def test_grid_config_rejects_unknown_interval_setting():
    with pytest.raises(InvalidConfigValueError, match="7m"):
        GridConfig.from_settings({"aggregateInterval": "7m"})

    assert GridConfig.from_settings({"aggregateInterval": "1h"}).aggregate_interval == "1h"


@pytest.mark.unit
@pytest.mark.parametrize("kwargs", [
    {"grid_levels": 0},
    {"pivot_n": -1},
    {"volatility_min": 10, "volatility_max": 5},
    {"stop_loss_percent": 0},
    {"aggregate_interval": "7m"},
    {"aggregate_interval": "1m"},
    {"aggregate_interval": None},
])
def test_grid_config_validation(kwargs):
    with pytest.raises(InvalidConfigValueError):
        GridConfig(**kwargs)


@pytest.mark.unit
def test_grid_state_is_replaced_not_mutated():
    state = _state()

    updated = state.with_buy_triggered(1)

    assert state.buy_triggered == (False, False, False)
    assert updated.buy_triggered == (False, True, False)
    assert not updated.all_buys_triggered
    assert updated.with_buy_triggered(0).with_buy_triggered(2).all_buys_triggered


@pytest.mark.unit
def test_empty_grid_state():
    state = GridState()

    assert state.is_empty
    assert not state.all_buys_triggered
    assert not state.all_sells_triggered
    assert state.to_dict()["volatility"] is None


# === Trading rules ===


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buy_cooldown_blocks_first_two_ticks():
    grid, _ = await _grid()
    grid.state = _state()

    for tick in (1, 2):
        grid.tick_count = tick
        grid.check_buy_levels(89.0)
        assert grid.portfolio.trade_count == 0

    grid.tick_count = 3
    grid.check_buy_levels(89.0)

    # One buy per tick: the cooldown also blocks the other crossed levels
    assert grid.portfolio.trade_count == 1
    assert grid.portfolio.balance == pytest.approx(10000 * 2 / 3)
    assert grid.state.buy_triggered == (True, False, False)
    assert grid.last_buy_tick == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buy_skipped_below_minimum_notional():
    grid, _ = await _grid(capital=20)
    grid.state = _state()
    grid.tick_count = 10

    grid.check_buy_levels(89.0)

    assert grid.portfolio.trade_count == 0
    assert grid.state.buy_triggered[0] is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sell_levels_split_remaining_position():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 30.0)
    grid.state = _state()

    grid.check_sell_levels(116.0)

    sells = grid.portfolio.trades[1:]
    assert [t.quantity for t in sells] == pytest.approx([10.0, 10.0])
    assert grid.held_quantity() == pytest.approx(10.0)
    assert grid.state.sell_triggered == (False, True, True)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sell_levels_ignore_dust_positions():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 0.05)
    grid.state = _state()

    grid.check_sell_levels(116.0)

    assert grid.portfolio.trade_count == 1
    assert grid.state.sell_triggered == (False, False, False)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stop_loss_liquidates_and_pauses():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 10.0)
    grid.state = _state()

    # stop = 90 * (1 - 2%) = 88.2
    assert grid.check_stop_loss(89.0) is False
    assert grid.check_stop_loss(88.0) is True

    assert grid.held_quantity() == 0.0
    assert grid.state.paused is True
    assert grid.portfolio.trades[-1].reason.startswith("Stop-loss")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_take_profit_sells_half():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 10.0)
    grid.state = _state()

    assert grid.check_take_profit(103.0) is False
    assert grid.check_take_profit(104.5) is True
    assert grid.held_quantity() == pytest.approx(5.0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_risk_checks_end_evaluation():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 10.0)
    grid.state = _state()
    grid.tick_count = 10

    # Take-profit fires, so the sell levels at 110/115 are not evaluated
    grid._evaluate(116.0)

    assert grid.held_quantity() == pytest.approx(5.0)
    assert grid.state.sell_triggered == (False, False, False)


# === Recalculation ===


@pytest.mark.asyncio
@pytest.mark.unit
async def test_on_tick_builds_grid_from_window(sine_market):
    config = GridConfig(grid_levels=2, pivot_n=2, window_days=1)
    grid, clock = await _grid(sine_market, config)
    clock.set(START_MS + 1439 * MINUTE_MS)

    await grid.on_tick()

    price = await grid.latest_price()
    state = grid.state
    assert not state.is_empty
    assert state.last_calc_timestamp == clock.now()
    assert len(state.buy_levels) == 2 and len(state.sell_levels) == 2
    assert list(state.buy_levels) == sorted(state.buy_levels)
    assert list(state.sell_levels) == sorted(state.sell_levels, reverse=True)
    assert max(state.buy_levels) < price < min(state.sell_levels)
    assert grid.portfolio.trade_count == 0
    assert len(grid.portfolio.snapshots) == 1
    assert any("Grid recalculated" in entry["message"] for entry in grid.get_logs())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_not_enough_history_keeps_grid_empty(market_factory):
    grid, clock = await _grid(market_factory([100.0] * 5))
    clock.set(START_MS + 4 * MINUTE_MS)

    await grid.on_tick()

    assert grid.state.is_empty
    assert len(grid.portfolio.snapshots) == 1
    assert any("Not enough" in entry["message"] for entry in grid.get_logs())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_price_skips_tick():
    grid, _ = await _grid()

    await grid.on_tick()

    assert grid.tick_count == 1
    assert grid.portfolio.snapshots == ()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_recalculates_when_all_buys_triggered(sine_market):
    config = GridConfig(grid_levels=2, pivot_n=2, window_days=1)
    grid, clock = await _grid(sine_market, config)
    clock.set(START_MS + 1439 * MINUTE_MS)
    grid.state = _state(buys=(1.0, 2.0), sells=(600.0, 500.0))
    grid.state = grid.state.with_buy_triggered(0).with_buy_triggered(1)

    await grid.on_tick()

    assert grid.state.buy_levels != (1.0, 2.0)
    assert grid.state.buy_triggered == (False, False)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sell_levels_trigger_highest_first_when_price_gaps_up():
    grid, _ = await _grid()
    grid.portfolio.execute_trade(SYMBOL, "BUY", 100.0, 30.0)
    grid.state = _state()

    grid.check_sell_levels(125.0)

    reasons = [t.reason for t in grid.portfolio.trades[1:]]
    assert [r.split(" (")[0] for r in reasons] == ["Grid sell H1", "Grid sell H2", "Grid sell H3"]
    assert "level 120" in reasons[0]
    assert grid.held_quantity() == pytest.approx(0.0, abs=1e-9)
    assert grid.state.all_sells_triggered
