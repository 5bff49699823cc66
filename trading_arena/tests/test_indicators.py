"""
Tests for pivots, volatility, candle aggregation and technical indicators.
"""

import pytest

from trading_arena.exceptions import InvalidConfigValueError
from trading_arena.indicators import (
    MACDResult,
    aggregate_by_interval,
    aggregate_candles,
    analyze_volatility,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_volatility,
    find_pivot_highs,
    find_pivot_lows,
    get_recent_pivots,
    to_1d,
    validate_aggregate_interval,
)
from trading_arena.models import OHLCV

START_MS = 1704067200000


def _bars(lows, highs=None):
    """Candles with explicit lows/highs (high defaults to low + 1)."""
    highs = highs or [low + 1 for low in lows]
    return [
        OHLCV(
            timestamp=START_MS + i * 900_000,
            open=(low + high) / 2,
            high=high,
            low=low,
            close=(low + high) / 2,
            volume=1.0,
        )
        for i, (low, high) in enumerate(zip(lows, highs))
    ]


# === Pivots ===


@pytest.mark.unit
def test_pivot_low_strictly_below_neighbours():
    pivots = find_pivot_lows(_bars([10, 9, 8, 7, 8, 9, 10]), n=3)

    assert len(pivots) == 1
    assert pivots[0].index == 3
    assert pivots[0].price == 7
    assert pivots[0].timestamp == START_MS + 3 * 900_000


@pytest.mark.unit
def test_pivot_high_strictly_above_neighbours():
    candles = _bars([1, 2, 3, 4, 3, 2, 1], highs=[2, 3, 4, 9, 4, 3, 2])

    pivots = find_pivot_highs(candles, n=2)

    assert [p.price for p in pivots] == [9]


@pytest.mark.unit
def test_equal_neighbours_are_not_pivots():
    assert find_pivot_lows(_bars([5, 5, 5, 5, 5]), n=1) == []


@pytest.mark.unit
def test_too_few_candles_yield_no_pivots():
    assert find_pivot_lows(_bars([3, 2, 1, 2, 3]), n=3) == []
    assert find_pivot_highs(_bars([3, 2, 1, 2, 3]), n=3) == []


@pytest.mark.unit
def test_recent_pivots_pick_latest_and_sort():
    # Pivot lows at 8, 6 and 9 (n=1)
    candles = _bars([10, 8, 10, 6, 10, 9, 10])

    levels = get_recent_pivots(candles, n=1, count=2)

    assert levels.lows == [6, 9]


@pytest.mark.unit
def test_recent_pivots_nearest_to_reference_price():
    candles = _bars([10, 8, 10, 6, 10, 9, 10])

    levels = get_recent_pivots(candles, n=1, count=2, ref_price=8.5)

    assert levels.lows == [8, 9]


@pytest.mark.unit
def test_recent_pivot_highs_descending():
    candles = _bars([1, 1, 1, 1, 1, 1, 1], highs=[5, 7, 5, 9, 5, 8, 5])

    levels = get_recent_pivots(candles, n=1, count=3)

    assert levels.highs == [9, 8, 7]


# === Volatility ===


@pytest.mark.unit
def test_range_volatility():
    candles = _bars([100, 102, 104], highs=[105, 110, 106])

    assert calculate_volatility(candles) == pytest.approx(10.0)

    result = analyze_volatility(candles, 5, 15)
    assert result.in_range is True
    assert result.highest == 110
    assert result.lowest == 100

    assert analyze_volatility(candles, 2, 5).in_range is False


@pytest.mark.unit
def test_volatility_of_empty_window():
    result = analyze_volatility([], 2, 50)

    assert result.volatility == 0.0
    assert result.in_range is False
    assert calculate_volatility([]) == 0.0


# === Aggregation ===


@pytest.mark.unit
def test_aggregate_1m_to_15m(candle_factory):
    candles = candle_factory([100 + i for i in range(30)])

    aggregated = aggregate_by_interval(candles, "15m")

    assert len(aggregated) == 2
    first = aggregated[0]
    assert first.timestamp == START_MS
    assert first.open == candles[0].open
    assert first.close == candles[14].close
    assert first.high == max(c.high for c in candles[:15])
    assert first.low == min(c.low for c in candles[:15])
    assert first.volume == pytest.approx(sum(c.volume for c in candles[:15]))
    assert first.interval == "15m"
    assert aggregated[1].timestamp == START_MS + 900_000


@pytest.mark.unit
def test_aggregate_uses_bucket_start_not_first_candle(candle_factory):
    candles = candle_factory([100.0] * 15, start=START_MS + 5 * 60_000)

    aggregated = aggregate_candles(candles, 15)

    # minutes 5..14 and 15..19
    assert [c.timestamp for c in aggregated] == [START_MS, START_MS + 900_000]
    assert aggregated[0].volume == pytest.approx(100.0)
    assert aggregated[1].volume == pytest.approx(50.0)


@pytest.mark.unit
def test_aggregate_passthrough_and_empty(candle_factory):
    candles = candle_factory([100.0, 101.0])

    assert aggregate_candles(candles, 1) == candles
    assert aggregate_candles([], 15) == []


@pytest.mark.unit
def test_aggregate_by_interval_rejects_unknown(candle_factory):
    with pytest.raises(InvalidConfigValueError):
        aggregate_by_interval(candle_factory([100.0]), "7m")


@pytest.mark.unit
def test_aggregate_sums_extra_volume_columns():
    candles = [
        OHLCV(START_MS + i * 60_000, 100.0, 101.0, 99.0, 100.0, 2.0,
              quote_volume=200.0, taker_buy_base_volume=1.0, trade_count=3)
        for i in range(10)
    ]

    [bar] = aggregate_candles(candles, 15)

    assert bar.volume == pytest.approx(20.0)
    assert bar.quote_volume == pytest.approx(2000.0)
    assert bar.taker_buy_base_volume == pytest.approx(10.0)
    assert bar.trade_count == 30
    assert isinstance(bar.trade_count, int)


@pytest.mark.unit
def test_to_1d_groups_by_utc_day(candle_factory):
    hourly = candle_factory([100.0 + i for i in range(48)], step_ms=3_600_000)

    days = to_1d(hourly)

    assert [d.timestamp for d in days] == [START_MS, START_MS + 86_400_000]
    assert [d.close for d in days] == [123.0, 147.0]
    assert days[1].open == hourly[24].open
    assert days[0].interval == "1d"


@pytest.mark.unit
@pytest.mark.parametrize("interval,minutes", [("5m", 5), ("15m", 15), ("4h", 240), ("1d", 1440)])
def test_validate_aggregate_interval(interval, minutes):
    assert validate_aggregate_interval(interval) == minutes


@pytest.mark.unit
@pytest.mark.parametrize("interval", ["7m", "1m", "", None, 15])
def test_validate_aggregate_interval_rejects(interval):
    with pytest.raises(InvalidConfigValueError):
        validate_aggregate_interval(interval)


# === Technical ===


@pytest.mark.unit
def test_rsi_bounds():
    assert calculate_rsi([100.0] * 10) == 50.0
    assert calculate_rsi([100 + i for i in range(30)]) == 100.0
    assert calculate_rsi([100 - i for i in range(30)]) == pytest.approx(0.0)

    value = calculate_rsi([100, 101, 100.5, 102, 101, 103, 102, 104, 103, 105,
                           104, 106, 105, 107, 106, 108])
    assert 50 < value < 100


@pytest.mark.unit
def test_sma():
    assert calculate_sma([1, 2, 3, 4], 2) == pytest.approx(3.5)
    assert calculate_sma([1, 2], 5) == 2
    assert calculate_sma([], 5) == 0.0


@pytest.mark.unit
def test_ema_of_constant_series():
    assert calculate_ema([50.0] * 40, 12) == pytest.approx(50.0)


@pytest.mark.unit
def test_ema_seeded_with_sma():
    # seed = mean(1, 2, 3) = 2, then alpha 0.5: 3, 4
    assert calculate_ema([1.0, 2.0, 3.0, 4.0, 5.0], 3) == pytest.approx(4.0)
    assert calculate_ema([1.0, 2.0], 3) == pytest.approx(2.0)


@pytest.mark.unit
def test_rsi_balanced_moves_is_neutral():
    # 7 gains and 7 losses of 1 in the first window
    assert calculate_rsi([100.0, 101.0] * 7 + [100.0]) == pytest.approx(50.0)


@pytest.mark.unit
def test_macd_short_series_is_neutral():
    result = calculate_macd([100.0] * 10)

    assert result == MACDResult(macd=0.0, signal=0.0, histogram=0.0)
    assert result.trend == "neutral"


@pytest.mark.unit
def test_macd_positive_in_uptrend():
    prices = [100 * 1.002 ** i for i in range(120)]

    assert calculate_macd(prices).macd > 0
    assert calculate_macd(prices[::-1]).macd < 0


@pytest.mark.unit
def test_macd_trend_from_histogram():
    assert MACDResult(1.0, 0.5, 0.5).trend == "bullish"
    assert MACDResult(-1.0, -0.5, -0.5).trend == "bearish"
