"""Performance analytics for race results.

Components:
- calculate_max_drawdown: peak-to-trough decline of an equity curve
- calculate_sharpe_ratio: risk-adjusted return per step
- calculate_returns: per-step simple returns
- calculate_trade_stats: win rate, average win/loss, profit factor

Example Usage:
    ```python
    from trading_arena.analytics import calculate_max_drawdown

    calculate_max_drawdown([10000, 12000, 9000, 11000])  # 25.0
    ```

Note:
- Sharpe ratio is not annualized; compare only runs with equal step size
"""

from .metrics import (
    calculate_max_drawdown,
    calculate_returns,
    calculate_sharpe_ratio,
    calculate_trade_stats,
)

__all__ = [
    "calculate_max_drawdown",
    "calculate_returns",
    "calculate_sharpe_ratio",
    "calculate_trade_stats",
]
