"""Candle repository for database operations.

Implements repository pattern for candle reads and idempotent bulk writes.
"""

from typing import List, Optional, Sequence

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ...models import OHLCV
from ..models import KlineRecord

BATCH_SIZE = 1000


def _insert_ignore(dialect_name: str):
    """INSERT that skips rows whose primary key already exists."""
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert
        return sqlite_insert(KlineRecord).on_conflict_do_nothing()
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        return pg_insert(KlineRecord).on_conflict_do_nothing()
    return None


class CandleRepository:
    """Repository for stored candles.

    Example:
        >>> with session_factory() as session:
        ...     repo = CandleRepository(session)
        ...     candles = repo.query_candles("BTCUSDT", "1m", end=ts, limit=1)
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def insert_candles(self, candles: Sequence[OHLCV], symbol: str, interval: str) -> int:
        """Insert candles, ignoring ones already stored.

        Args:
            candles: Candles to store
            symbol: Trading symbol
            interval: Candle interval

        Returns:
            Number of candles submitted
        """
        if not candles:
            return 0

        rows = [KlineRecord.values_from_candle(c, symbol, interval) for c in candles]
        statement = _insert_ignore(self.db.get_bind().dialect.name)

        for start in range(0, len(rows), BATCH_SIZE):
            batch = rows[start:start + BATCH_SIZE]
            if statement is not None:
                self.db.execute(statement, batch)
            else:
                for row in batch:
                    self.db.merge(KlineRecord(**row))

        self.db.commit()
        return len(rows)

    def query_candles(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: int = 1000,
    ) -> List[OHLCV]:
        """Most recent `limit` candles within [start, end], oldest first.

        Args:
            symbol: Trading symbol
            interval: Candle interval
            start: Inclusive lower bound (ms)
            end: Inclusive upper bound (ms)
            limit: Maximum number of candles

        Returns:
            Candles ordered oldest-first
        """
        query = self.db.query(KlineRecord).filter_by(symbol=symbol, interval=interval)

        if start is not None:
            query = query.filter(KlineRecord.timestamp >= start)
        if end is not None:
            query = query.filter(KlineRecord.timestamp <= end)

        records = query.order_by(desc(KlineRecord.timestamp)).limit(limit).all()
        return [r.to_candle() for r in reversed(records)]

    def get_date_range(self, symbol: str, interval: str) -> Optional[tuple[int, int]]:
        """First and last stored timestamp, or None when empty."""
        row = (
            self.db.query(func.min(KlineRecord.timestamp), func.max(KlineRecord.timestamp))
            .filter(KlineRecord.symbol == symbol, KlineRecord.interval == interval)
            .one()
        )
        if row[0] is None or row[1] is None:
            return None
        return int(row[0]), int(row[1])

    def get_stats(self) -> List[dict]:
        """Candle counts and ranges grouped by symbol and interval."""
        rows = (
            self.db.query(
                KlineRecord.symbol,
                KlineRecord.interval,
                func.count(),
                func.min(KlineRecord.timestamp),
                func.max(KlineRecord.timestamp),
            )
            .group_by(KlineRecord.symbol, KlineRecord.interval)
            .order_by(KlineRecord.symbol, KlineRecord.interval)
            .all()
        )
        return [
            {
                "symbol": symbol,
                "interval": interval,
                "count": int(count),
                "start": int(first),
                "end": int(last),
            }
            for symbol, interval, count, first, last in rows
        ]
