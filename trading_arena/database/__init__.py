"""Database module for the market data store.

Provides SQLAlchemy models, engine construction, the candle repository and
the MarketDataReader API consumed by races.
"""

from .models import Base, KlineRecord
from .connection import create_market_engine, create_session_factory, init_db
from .market_db import (
    InMemoryMarketData,
    MarketDatabase,
    MarketDataReader,
    latest_candle,
    load_candles_csv,
)

__all__ = [
    "Base",
    "KlineRecord",
    "create_market_engine",
    "create_session_factory",
    "init_db",
    "InMemoryMarketData",
    "MarketDatabase",
    "MarketDataReader",
    "latest_candle",
    "load_candles_csv",
]
