"""SQLAlchemy models for the market data store.

One table of candles keyed by (symbol, interval, timestamp).
"""

from sqlalchemy import BigInteger, Column, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

from ..models import OHLCV

Base = declarative_base()


class KlineRecord(Base):
    """Stored candle.

    Example:
        >>> record = KlineRecord.from_candle(candle, "BTCUSDT", "1m")
        >>> session.add(record)
        >>> session.commit()
    """

    __tablename__ = "klines"

    symbol = Column(String(20), primary_key=True, nullable=False)
    interval = Column(String(8), primary_key=True, nullable=False)
    timestamp = Column(BigInteger, primary_key=True, nullable=False)  # ms, bucket start

    open = Column(Float, nullable=False)
    high = Column(Float, nullable=False)
    low = Column(Float, nullable=False)
    close = Column(Float, nullable=False)
    volume = Column(Float, nullable=False, default=0.0)
    quote_volume = Column(Float, nullable=False, default=0.0)
    taker_buy_base_volume = Column(Float, nullable=False, default=0.0)
    trade_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_klines_time", "symbol", "interval", "timestamp"),
    )

    def __repr__(self):
        """String representation of candle record."""
        return (
            f"<KlineRecord(symbol='{self.symbol}', "
            f"interval='{self.interval}', "
            f"timestamp={self.timestamp}, "
            f"close={self.close})>"
        )

    @staticmethod
    def values_from_candle(candle: OHLCV, symbol: str, interval: str) -> dict:
        """Column values for inserting a candle."""
        return {
            "symbol": symbol,
            "interval": interval,
            "timestamp": candle.timestamp,
            "open": candle.open,
            "high": candle.high,
            "low": candle.low,
            "close": candle.close,
            "volume": candle.volume,
            "quote_volume": candle.quote_volume,
            "taker_buy_base_volume": candle.taker_buy_base_volume,
            "trade_count": candle.trade_count,
        }

    @classmethod
    def from_candle(cls, candle: OHLCV, symbol: str, interval: str) -> "KlineRecord":
        return cls(**cls.values_from_candle(candle, symbol, interval))

    def to_candle(self) -> OHLCV:
        """Convert to an OHLCV model."""
        return OHLCV(
            timestamp=int(self.timestamp),
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
            symbol=self.symbol,
            interval=self.interval,
            quote_volume=self.quote_volume or 0.0,
            taker_buy_base_volume=self.taker_buy_base_volume or 0.0,
            trade_count=self.trade_count or 0,
        )
