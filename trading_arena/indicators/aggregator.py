"""Candle aggregation from fine to coarse intervals.

Candles are grouped into buckets of floor(timestamp / interval_ms); each
bucket becomes one candle stamped with the bucket start:

- open: first candle's open
- high / low: max / min across the bucket
- close: last candle's close
- volume, quote volume, taker buy volume, trade count: summed

Input must be ordered oldest-first; output keeps that order.
"""

from typing import Sequence

import pandas as pd

from ..exceptions import InvalidConfigValueError
from ..models import OHLCV

INTERVAL_MINUTES = {
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "2h": 120,
    "4h": 240,
    "6h": 360,
    "12h": 720,
    "1d": 1440,
}

AGGREGATIONS = {
    "open": "first",
    "high": "max",
    "low": "min",
    "close": "last",
    "volume": "sum",
    "quote_volume": "sum",
    "taker_buy_base_volume": "sum",
    "trade_count": "sum",
}


def _interval_label(interval_minutes: int) -> str:
    for label, minutes in INTERVAL_MINUTES.items():
        if minutes == interval_minutes:
            return label
    return f"{interval_minutes}m"


def aggregate_candles(candles: Sequence[OHLCV], interval_minutes: int) -> list[OHLCV]:
    """Aggregate candles into interval_minutes buckets.

    Args:
        candles: Fine-grained candles ordered oldest-first
        interval_minutes: Target interval; values <= 1 return the input

    Returns:
        Aggregated candles ordered oldest-first

    Example:
        >>> candles_15m = aggregate_candles(candles_1m, 15)
    """
    if not candles:
        return []
    if interval_minutes <= 1:
        return list(candles)

    interval_ms = interval_minutes * 60 * 1000
    label = _interval_label(interval_minutes)
    symbol = candles[0].symbol

    df = pd.DataFrame(
        [[getattr(c, column) for column in AGGREGATIONS] for c in candles],
        columns=list(AGGREGATIONS),
    )
    buckets = pd.Series([c.timestamp // interval_ms * interval_ms for c in candles], name="bucket")
    bars = df.groupby(buckets, sort=True).agg(AGGREGATIONS)

    return [
        OHLCV(
            timestamp=int(row.Index),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
            symbol=symbol,
            interval=label,
            quote_volume=float(row.quote_volume),
            taker_buy_base_volume=float(row.taker_buy_base_volume),
            trade_count=int(row.trade_count),
        )
        for row in bars.itertuples()
    ]


def aggregate_by_interval(candles: Sequence[OHLCV], interval: str) -> list[OHLCV]:
    """Aggregate using an interval string such as "15m", "4h" or "1d".

    Raises:
        InvalidConfigValueError: If the interval is not supported
    """
    return aggregate_candles(candles, validate_aggregate_interval(interval))


def validate_aggregate_interval(interval: str) -> int:
    """Minutes of a supported aggregation interval.

    Raises:
        InvalidConfigValueError: If the interval is not supported
    """
    minutes = INTERVAL_MINUTES.get(interval) if isinstance(interval, str) else None
    if not minutes:
        raise InvalidConfigValueError(
            f"Unsupported aggregation interval: {interval}. "
            f"Supported: {', '.join(INTERVAL_MINUTES)}"
        )
    return minutes


def to_1d(candles: Sequence[OHLCV]) -> list[OHLCV]:
    return aggregate_candles(candles, 1440)
