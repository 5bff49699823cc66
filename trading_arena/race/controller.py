"""Race controller - deterministic replay loop.

Advances a VirtualClock from start to end in fixed steps and, at every step,
marks all contestants to the latest price and ticks them one after another.
Contestants never run concurrently: each sees the same time and the same
price, and a run is reproducible from its inputs.
"""

import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from ..clock import VirtualClock
from ..config import RaceConfig
from ..database import MarketDataReader, latest_candle
from ..exceptions import BacktestAbortedError, RaceStateError
from ..logging_config import RaceContext
from ..contestants import Contestant

logger = logging.getLogger(__name__)

PROGRESS_LOG_EVERY = 100


class RaceState(str, Enum):
    """Race lifecycle."""
    CONSTRUCTED = "constructed"
    INITIALIZING = "initializing"
    RUNNING = "running"
    FINISHED = "finished"
    ABORTED = "aborted"
    FAILED = "failed"


class AbortSignal:
    """Cooperative cancellation flag checked at the top of every step.

    Any object with an ``is_set()`` method (threading.Event, asyncio.Event)
    can be passed to RaceController.run() instead.
    """

    def __init__(self):
        self._aborted = False

    def abort(self) -> None:
        self._aborted = True

    @property
    def aborted(self) -> bool:
        return self._aborted

    def is_set(self) -> bool:
        return self._aborted


@dataclass
class ProgressEvent:
    """State of the race after one step."""

    timestamp: int
    progress: float  # 0-100
    equities: dict[str, float]
    positions: dict[str, dict[str, float]]
    logs: dict[str, list[dict]] = field(default_factory=dict)
    trades: dict[str, list[dict]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary; empty log/trade maps are omitted."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "progress": self.progress,
            "equities": self.equities,
            "positions": self.positions,
        }
        if self.logs:
            data["logs"] = self.logs
        if self.trades:
            data["trades"] = self.trades
        return data


@dataclass
class RaceResult:
    """Final standing of one contestant."""

    contestant_id: str
    name: str
    final_equity: float
    total_return: float  # Ratio, 0.05 means +5%
    trade_count: int
    sharpe_ratio: float
    max_drawdown: float  # Percent

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "contestant_id": self.contestant_id,
            "name": self.name,
            "final_equity": self.final_equity,
            "total_return": self.total_return,
            "trade_count": self.trade_count,
            "sharpe_ratio": self.sharpe_ratio,
            "max_drawdown": self.max_drawdown,
        }


ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class RaceController:
    """Runs one race.

    Example:
        >>> controller = RaceController(reader, RaceConfig("BTCUSDT", start, end))
        >>> controller.add_contestant(DCAContestant(...))
        >>> results = await controller.run(on_progress=print)
    """

    def __init__(self, reader: MarketDataReader, config: RaceConfig, fee_rate: float = 0.0):
        """Initialize the controller.

        Args:
            reader: Market data shared by every contestant
            config: Symbol, interval, window, step size and capital
            fee_rate: Fee rate applied by every contestant's ledger
        """
        self.reader = reader
        self.config = config
        self.fee_rate = fee_rate
        self.clock = VirtualClock(config.start)
        self.race_id = f"race-{uuid.uuid4().hex[:12]}"
        self.state = RaceState.CONSTRUCTED
        self._contestants: list[Contestant] = []
        self._trades_reported: dict[str, int] = {}

    @property
    def contestants(self) -> tuple[Contestant, ...]:
        return tuple(self._contestants)

    def add_contestant(self, contestant: Contestant) -> None:
        """Register a contestant. Only valid before run() starts.

        Raises:
            RaceStateError: If the race already started, or the id is taken
        """
        if self.state != RaceState.CONSTRUCTED:
            raise RaceStateError(f"Cannot add contestants to a race in state {self.state.value}")
        if any(c.contestant_id == contestant.contestant_id for c in self._contestants):
            raise RaceStateError(f"Duplicate contestant id: {contestant.contestant_id}")
        self._contestants.append(contestant)

    async def run(
        self,
        on_progress: Optional[ProgressCallback] = None,
        abort_signal: Optional[Any] = None,
    ) -> list[RaceResult]:
        """Replay the configured window.

        Args:
            on_progress: Called after every step with a ProgressEvent (sync or async)
            abort_signal: AbortSignal or any object with is_set()

        Returns:
            One RaceResult per contestant, in registration order

        Raises:
            RaceStateError: If the race was already run
            BacktestAbortedError: If abort_signal was set during the run

        Any other exception leaves the race FAILED and is re-raised.
        """
        if self.state != RaceState.CONSTRUCTED:
            raise RaceStateError(f"Race already {self.state.value}")

        RaceContext.set_race_id(self.race_id)
        started = time.monotonic()
        try:
            await self._initialize()
            steps = await self._run_loop(on_progress, abort_signal)

            results = [self._result_for(c) for c in self._contestants]
            self.state = RaceState.FINISHED
            logger.info(
                "race_finished",
                extra={
                    **RaceContext.get_extra(),
                    "steps": steps,
                    "elapsed_seconds": round(time.monotonic() - started, 3),
                    "results": [r.to_dict() for r in results],
                },
            )
            return results

        except BacktestAbortedError as e:
            self.state = RaceState.ABORTED
            logger.warning(
                "race_aborted",
                extra={**RaceContext.get_extra(), "sim_time": e.timestamp},
            )
            raise

        except Exception as e:
            self.state = RaceState.FAILED
            logger.error(
                "race_failed",
                extra={
                    **RaceContext.get_extra(),
                    "sim_time": self.clock.now(),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise

        finally:
            RaceContext.clear()

    async def _initialize(self) -> None:
        self.state = RaceState.INITIALIZING
        logger.info(
            "race_started",
            extra={
                **RaceContext.get_extra(),
                "symbol": self.config.symbol,
                "start": self.config.start,
                "end": self.config.end,
                "step_minutes": self.config.step_minutes,
                "contestants": [c.contestant_id for c in self._contestants],
            },
        )

        for contestant in self._contestants:
            await contestant.initialize(self.config.initial_capital, self.clock, self.fee_rate)
            self._trades_reported[contestant.contestant_id] = 0

    async def _run_loop(self, on_progress: Optional[ProgressCallback], abort_signal: Any) -> int:
        self.state = RaceState.RUNNING
        timestamp = self.config.start
        steps = 0

        while timestamp <= self.config.end:
            if _is_aborted(abort_signal):
                raise BacktestAbortedError(timestamp)

            self.clock.set(timestamp)

            candle = await latest_candle(
                self.reader, self.config.symbol, self.config.interval, timestamp
            )
            if candle is not None:
                for contestant in self._contestants:
                    contestant.update_price(self.config.symbol, candle.close)

            for contestant in self._contestants:
                await contestant.on_tick()

            if on_progress is not None:
                outcome = on_progress(self._progress_event(timestamp))
                if inspect.isawaitable(outcome):
                    await outcome

            steps += 1
            if steps % PROGRESS_LOG_EVERY == 0:
                logger.info(
                    "race_progress",
                    extra={
                        **RaceContext.get_extra(),
                        "steps": steps,
                        "sim_time": timestamp,
                        "progress": round(self._progress(timestamp), 2),
                    },
                )

            timestamp += self.config.step_ms

        return steps

    def _progress(self, timestamp: int) -> float:
        span = self.config.end - self.config.start
        if span <= 0:
            return 100.0
        return (timestamp - self.config.start) / span * 100

    def _progress_event(self, timestamp: int) -> ProgressEvent:
        equities = {}
        positions = {}
        logs = {}
        trades = {}

        for contestant in self._contestants:
            cid = contestant.contestant_id
            metrics = contestant.get_metrics()
            equities[cid] = metrics.total_equity
            positions[cid] = {
                "quantity": contestant.held_quantity(),
                "balance": metrics.balance,
            }

            new_logs = contestant.get_logs()
            if new_logs:
                logs[cid] = new_logs

            new_trades = contestant.get_trades(self._trades_reported[cid])
            if new_trades:
                trades[cid] = new_trades
                self._trades_reported[cid] += len(new_trades)

        return ProgressEvent(
            timestamp=timestamp,
            progress=self._progress(timestamp),
            equities=equities,
            positions=positions,
            logs=logs,
            trades=trades,
        )

    def _result_for(self, contestant: Contestant) -> RaceResult:
        overview = contestant.get_portfolio().get_overview()
        initial = overview.initial_capital
        return RaceResult(
            contestant_id=contestant.contestant_id,
            name=contestant.name,
            final_equity=overview.total_equity,
            total_return=(overview.total_equity - initial) / initial,
            trade_count=overview.trade_count,
            sharpe_ratio=overview.sharpe_ratio,
            max_drawdown=overview.max_drawdown,
        )


def _is_aborted(signal: Any) -> bool:
    if signal is None:
        return False
    if hasattr(signal, "is_set"):
        return bool(signal.is_set())
    return bool(getattr(signal, "aborted", False))
