"""Market data read API.

Everything a race needs from market history goes through MarketDataReader:

    await reader.query_candles(symbol, interval, start=None, end=None, limit=1000)

Contract: start/end are inclusive millisecond bounds, the result holds the
most recent `limit` candles inside them, ordered oldest-first. Passing the
simulated "now" as `end` therefore never leaks future candles.

Two readers are provided: MarketDatabase (SQLAlchemy store) and
InMemoryMarketData (list-backed, for tests and CSV replays).
"""

import bisect
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import MarketDataError
from ..models import OHLCV
from ..validation import validate_interval, validate_limit, validate_symbol
from .connection import DEFAULT_DATABASE_URL, create_market_engine, create_session_factory, init_db
from .repositories import CandleRepository

logger = logging.getLogger(__name__)


@runtime_checkable
class MarketDataReader(Protocol):
    """Read-only candle source shared by the controller and contestants."""

    async def query_candles(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: int = 1000,
    ) -> list[OHLCV]:
        ...


async def latest_candle(
    reader: MarketDataReader,
    symbol: str,
    interval: str,
    at: int,
) -> Optional[OHLCV]:
    """Most recent candle at or before `at`, or None."""
    candles = await reader.query_candles(symbol, interval, end=at, limit=1)
    return candles[-1] if candles else None


class MarketDatabase:
    """SQLAlchemy-backed candle store.

    Opened once per process and passed to whoever needs it.

    Example:
        >>> async with MarketDatabase("sqlite:///data/market.db") as db:
        ...     candles = await db.query_candles("BTCUSDT", "1m", end=ts, limit=10)
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL):
        self.database_url = database_url
        self.engine = create_market_engine(database_url)
        self.session_factory = create_session_factory(self.engine)
        self._initialized = False

    async def init(self) -> None:
        """Create the schema if needed.

        Raises:
            MarketDataError: If the database cannot be reached
        """
        if self._initialized:
            return
        try:
            init_db(self.engine)
        except SQLAlchemyError as e:
            raise MarketDataError(f"Failed to initialize market database: {e}") from e
        self._initialized = True

    async def insert_candles(self, candles: Sequence[OHLCV], symbol: str, interval: str) -> int:
        """Store candles; already-stored (symbol, interval, timestamp) rows are kept.

        Returns:
            Number of candles submitted
        """
        symbol = validate_symbol(symbol)
        interval = validate_interval(interval)
        await self.init()

        try:
            with self.session_factory() as session:
                count = CandleRepository(session).insert_candles(candles, symbol, interval)
        except SQLAlchemyError as e:
            raise MarketDataError(f"Failed to insert candles: {e}") from e

        logger.info(
            "candles_inserted",
            extra={"symbol": symbol, "interval": interval, "count": count},
        )
        return count

    async def query_candles(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: int = 1000,
    ) -> list[OHLCV]:
        """Most recent `limit` candles within [start, end], oldest first."""
        limit = validate_limit(limit)
        await self.init()

        try:
            with self.session_factory() as session:
                return CandleRepository(session).query_candles(
                    symbol, interval, start=start, end=end, limit=limit
                )
        except SQLAlchemyError as e:
            raise MarketDataError(f"Failed to query candles: {e}") from e

    async def get_date_range(self, symbol: str, interval: str) -> Optional[tuple[int, int]]:
        """First and last stored timestamps (ms), or None if no data."""
        await self.init()
        with self.session_factory() as session:
            return CandleRepository(session).get_date_range(symbol, interval)

    async def get_stats(self) -> list[dict]:
        """Candle counts per symbol and interval."""
        await self.init()
        with self.session_factory() as session:
            return CandleRepository(session).get_stats()

    async def close(self) -> None:
        self.engine.dispose()

    async def __aenter__(self) -> "MarketDatabase":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class InMemoryMarketData:
    """List-backed reader with the same query contract as MarketDatabase.

    Candles without a symbol/interval match any symbol/interval query.
    """

    def __init__(self, candles: Iterable[OHLCV] = ()):
        self._candles: list[OHLCV] = []
        self._timestamps: list[int] = []
        self.add_candles(candles)

    def add_candles(self, candles: Iterable[OHLCV]) -> None:
        self._candles.extend(candles)
        self._candles.sort(key=lambda c: c.timestamp)
        self._timestamps = [c.timestamp for c in self._candles]

    def __len__(self) -> int:
        return len(self._candles)

    async def query_candles(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: int = 1000,
    ) -> list[OHLCV]:
        lo = 0 if start is None else bisect.bisect_left(self._timestamps, start)
        hi = len(self._candles) if end is None else bisect.bisect_right(self._timestamps, end)

        matched = [
            c for c in self._candles[lo:hi]
            if c.symbol in (None, symbol) and c.interval in (None, interval)
        ]
        if limit is not None and limit >= 0:
            matched = matched[-limit:] if limit else []
        return matched


# Column order of Binance public kline dumps (headerless CSV)
BINANCE_KLINE_COLUMNS = [
    "timestamp", "open", "high", "low", "close", "volume",
    "close_time", "quote_volume", "trade_count",
    "taker_buy_base_volume", "taker_buy_quote_volume", "ignore",
]


def load_candles_csv(path: str | Path, symbol: str, interval: str) -> list[OHLCV]:
    """Read candles from a CSV file.

    Accepts either a file with a header containing timestamp (or open_time),
    open, high, low, close and volume columns, or a headerless Binance kline
    dump. Microsecond timestamps are converted to milliseconds.

    Raises:
        MarketDataError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise MarketDataError(f"CSV file not found: {path}")

    try:
        df = pd.read_csv(path)
        if "open_time" in df.columns and "timestamp" not in df.columns:
            df = df.rename(columns={"open_time": "timestamp"})
        if "timestamp" not in df.columns:
            df = pd.read_csv(path, header=None)
            df.columns = BINANCE_KLINE_COLUMNS[:len(df.columns)]
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise MarketDataError(f"Failed to parse {path}: {e}") from e

    missing = {"timestamp", "open", "high", "low", "close", "volume"} - set(df.columns)
    if missing:
        raise MarketDataError(f"{path} is missing columns: {', '.join(sorted(missing))}")

    timestamps = df["timestamp"].astype("int64")
    df["timestamp"] = timestamps.where(timestamps < 10**14, timestamps // 1000)
    df = df.sort_values("timestamp").drop_duplicates("timestamp")

    candles = []
    for row in df.to_dict("records"):
        try:
            candles.append(
                OHLCV(
                    timestamp=int(row["timestamp"]),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row["volume"]),
                    symbol=symbol,
                    interval=interval,
                    quote_volume=float(row.get("quote_volume", 0.0) or 0.0),
                    taker_buy_base_volume=float(row.get("taker_buy_base_volume", 0.0) or 0.0),
                    trade_count=int(row.get("trade_count", 0) or 0),
                )
            )
        except (TypeError, ValueError) as e:
            raise MarketDataError(f"Malformed candle row in {path}: {row}") from e

    logger.info(
        "csv_loaded",
        extra={"path": str(path), "symbol": symbol, "interval": interval, "count": len(candles)},
    )
    return candles
