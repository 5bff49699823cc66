"""Portfolio ledger - simulated spot accounts for contestants.

Components:
- VirtualPortfolio: cash, weighted-average-cost positions, trade log,
  equity snapshots and derived performance overview

Example Usage:
    ```python
    from trading_arena.clock import VirtualClock
    from trading_arena.portfolio import VirtualPortfolio

    clock = VirtualClock(1704067200000)
    portfolio = VirtualPortfolio(10000, clock)
    portfolio.execute_trade("BTCUSDT", "BUY", 42000, 0.1, "entry")
    portfolio.take_snapshot()
    print(portfolio.get_overview().to_dict())
    ```
"""

from .ledger import VirtualPortfolio, POSITION_EPSILON

__all__ = [
    "VirtualPortfolio",
    "POSITION_EPSILON",
]
