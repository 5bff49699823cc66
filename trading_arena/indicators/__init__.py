"""Market structure and technical indicators.

Components:
- pivots: pivot low/high detection and level selection
- volatility: range volatility with an acceptable band
- aggregator: 1m -> coarser candle aggregation
- technical: RSI, SMA, EMA, MACD
"""

from .aggregator import (
    INTERVAL_MINUTES,
    aggregate_by_interval,
    aggregate_candles,
    validate_aggregate_interval,
    to_1d,
)
from .pivots import (
    PivotLevels,
    PivotPoint,
    find_pivot_highs,
    find_pivot_lows,
    get_recent_pivots,
)
from .technical import (
    MACDResult,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
)
from .volatility import VolatilityResult, analyze_volatility, calculate_volatility

__all__ = [
    # Aggregation
    "INTERVAL_MINUTES",
    "aggregate_by_interval",
    "aggregate_candles",
    "validate_aggregate_interval",
    "to_1d",
    # Pivots
    "PivotLevels",
    "PivotPoint",
    "find_pivot_highs",
    "find_pivot_lows",
    "get_recent_pivots",
    # Technical
    "MACDResult",
    "calculate_ema",
    "calculate_macd",
    "calculate_rsi",
    "calculate_sma",
    # Volatility
    "VolatilityResult",
    "analyze_volatility",
    "calculate_volatility",
]
