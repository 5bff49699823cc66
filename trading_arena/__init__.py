"""Trading arena - deterministic backtest races between trading strategies.

A race replays historical candles through a virtual clock. At every step
each contestant (DCA, pivot grid, multi-agent squad, LLM solo) sees the same
time and price, trades against its own simulated ledger, and is ranked by
return, Sharpe ratio and drawdown at the end.

Main components:
    - RaceController: the replay loop
    - VirtualClock: simulated time shared by every contestant
    - VirtualPortfolio: per-contestant cash/position ledger
    - MarketDatabase / InMemoryMarketData: candle readers
    - Contestants: DCAContestant, GridContestant, MASContestant, LLMSoloContestant

Example usage:
    >>> from trading_arena import MarketDatabase, RaceConfig, RaceController, DCAContestant
    >>>
    >>> async with MarketDatabase("sqlite:///data/market.db") as db:
    ...     race = RaceController(db, RaceConfig("BTCUSDT", start, end, step_minutes=15))
    ...     race.add_contestant(DCAContestant("dca-bot", "DCA", db, "BTCUSDT", invest_amount=500))
    ...     results = await race.run()
"""

from .clock import Clock, SystemClock, VirtualClock
from .config import ArenaConfig, ContestantSpec, RaceConfig, RunConfig
from .contestants import (
    Contestant,
    DCAContestant,
    GridConfig,
    GridContestant,
    LLMSoloContestant,
    MASContestant,
)
from .database import InMemoryMarketData, MarketDatabase, MarketDataReader
from .portfolio import VirtualPortfolio
from .race import AbortSignal, RaceController, RaceResult, build_contestants

__all__ = [
    "Clock",
    "SystemClock",
    "VirtualClock",
    "ArenaConfig",
    "ContestantSpec",
    "RaceConfig",
    "RunConfig",
    "Contestant",
    "DCAContestant",
    "GridConfig",
    "GridContestant",
    "LLMSoloContestant",
    "MASContestant",
    "InMemoryMarketData",
    "MarketDatabase",
    "MarketDataReader",
    "VirtualPortfolio",
    "AbortSignal",
    "RaceController",
    "RaceResult",
    "build_contestants",
]

__version__ = "0.1.0"
