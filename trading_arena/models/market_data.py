"""Market data models.

Candles are the only market data a race consumes: the store holds 1-minute
candles and the aggregator derives coarser intervals from them.
"""

from dataclasses import dataclass
from typing import Any, Optional
from datetime import datetime, timezone


@dataclass(frozen=True)
class OHLCV:
    """OHLCV (candlestick) data structure.

    Optional fields carry the extra volume columns exported by Binance-style
    kline dumps; they are summed by the aggregator when present.
    """

    timestamp: int  # Unix timestamp in milliseconds (bucket start)
    open: float
    high: float
    low: float
    close: float
    volume: float
    symbol: Optional[str] = None
    interval: Optional[str] = None
    quote_volume: float = 0.0
    taker_buy_base_volume: float = 0.0
    trade_count: int = 0

    def __post_init__(self):
        """Validate data integrity."""
        if self.high < self.low:
            raise ValueError(f"Invalid OHLCV: high ({self.high}) < low ({self.low})")
        if self.close <= 0:
            raise ValueError(f"Invalid OHLCV: close ({self.close}) <= 0")
        if self.volume < 0:
            raise ValueError(f"Invalid OHLCV: volume ({self.volume}) < 0")

    @property
    def datetime(self) -> datetime:
        """Convert timestamp to a UTC datetime object."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    @property
    def body(self) -> float:
        """Candle body size (absolute)."""
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        """Whether candle closed higher than open."""
        return self.close > self.open

    @classmethod
    def from_row(cls, row: Any) -> "OHLCV":
        """Create from a database row or mapping.

        Args:
            row: Mapping (or SQLAlchemy row with ``_mapping``) holding the
                kline columns

        Returns:
            OHLCV instance

        Example:
            >>> row = {"timestamp": 1704067200000, "open": 42000.0, "high": 42500.0,
            ...        "low": 41800.0, "close": 42300.0, "volume": 100.5}
            >>> OHLCV.from_row(row).close
            42300.0
        """
        data = getattr(row, "_mapping", row)
        return cls(
            timestamp=int(data["timestamp"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=float(data["volume"]),
            symbol=data.get("symbol"),
            interval=data.get("interval"),
            quote_volume=float(data.get("quote_volume") or 0.0),
            taker_buy_base_volume=float(data.get("taker_buy_base_volume") or 0.0),
            trade_count=int(data.get("trade_count") or 0),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary.

        Returns:
            Dict with all fields
        """
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "symbol": self.symbol,
            "interval": self.interval,
            "quote_volume": self.quote_volume,
            "taker_buy_base_volume": self.taker_buy_base_volume,
            "trade_count": self.trade_count,
        }
