"""Contestant interface.

A contestant owns exactly one VirtualPortfolio and reacts to the race's
ticks. The controller drives every contestant through the same sequence:

    await contestant.initialize(capital, clock)
    contestant.update_price(symbol, price)   # each tick, before on_tick
    await contestant.on_tick()
    contestant.get_logs()                    # drained after each tick
    contestant.get_trades(start_index)       # only the new trades

Contestants must read time from the injected clock and market history only
through the reader, bounded by ``end=clock.now()``.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..clock import Clock
from ..database import MarketDataReader, latest_candle
from ..exceptions import RaceStateError
from ..logging_config import RaceContext, get_logger
from ..models import PortfolioOverview
from ..portfolio import VirtualPortfolio


class Contestant(ABC):
    """Base class for all contestants.

    Subclasses implement on_tick(); logging, the log buffer and ledger
    access are shared here.
    """

    kind: str = "contestant"
    log_prefix: str = ""

    def __init__(
        self,
        contestant_id: str,
        name: str,
        reader: MarketDataReader,
        symbol: str,
        interval: str = "1m",
    ):
        self.contestant_id = contestant_id
        self.name = name
        self.reader = reader
        self.symbol = symbol
        self.interval = interval
        self.clock: Optional[Clock] = None
        self._portfolio: Optional[VirtualPortfolio] = None
        self._logs: list[dict[str, Any]] = []
        self.logger = get_logger(f"{__name__.rsplit('.', 1)[0]}.{self.kind}")

    @property
    def portfolio(self) -> VirtualPortfolio:
        if self._portfolio is None:
            raise RaceStateError(f"Contestant {self.contestant_id} is not initialized")
        return self._portfolio

    async def initialize(self, initial_capital: float, clock: Clock, fee_rate: float = 0.0) -> None:
        """Create the ledger and bind the shared clock."""
        self.clock = clock
        self._portfolio = VirtualPortfolio(initial_capital, clock, fee_rate=fee_rate)
        self.logger.info(
            "contestant_initialized",
            extra={
                **RaceContext.get_extra(),
                "contestant": self.contestant_id,
                "kind": self.kind,
                "initial_capital": initial_capital,
            },
        )

    @abstractmethod
    async def on_tick(self) -> None:
        """React to the current simulated time."""

    def update_price(self, symbol: str, price: float) -> None:
        self.portfolio.update_price(symbol, price)

    def get_portfolio(self) -> VirtualPortfolio:
        return self.portfolio

    def log(self, message: str, level: str = "info", **fields) -> dict[str, Any]:
        """Buffer a log entry for the progress stream and emit it.

        Returns:
            The buffered entry
        """
        entry = {"timestamp": self.clock.now() if self.clock else 0, "message": message, **fields}
        self._logs.append(entry)

        log_method = getattr(self.logger, level, self.logger.info)
        log_method(
            f"{self.log_prefix}{message}",
            extra={**RaceContext.get_extra(), "contestant": self.contestant_id, **fields},
        )
        return entry

    def get_logs(self) -> list[dict[str, Any]]:
        """Drain the log buffer."""
        logs, self._logs = self._logs, []
        return logs

    def get_trades(self, start_index: int = 0) -> list[dict[str, Any]]:
        """Trade records at or after start_index, as dictionaries."""
        return [t.to_dict() for t in self.portfolio.get_trades_incremental(start_index)]

    def get_metrics(self) -> PortfolioOverview:
        return self.portfolio.get_overview_basic()

    async def latest_price(self) -> Optional[float]:
        """Close of the most recent candle at or before now, or None."""
        candle = await latest_candle(self.reader, self.symbol, self.interval, self.clock.now())
        return candle.close if candle else None

    def held_quantity(self) -> float:
        position = self.portfolio.get_position(self.symbol)
        return position.quantity if position else 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.contestant_id!r}, symbol={self.symbol!r})"
