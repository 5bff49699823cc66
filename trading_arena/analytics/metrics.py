"""Performance metrics computed from equity snapshots.

Metrics are derived only from the snapshot series (one point per tick),
never from the trade list, so every contestant is measured on the same
time grid.
"""

import math
from typing import Sequence

import numpy as np
import pandas as pd

from ..models import TradeRecord, TradeSide


def calculate_returns(equities: Sequence[float]) -> pd.Series:
    """Simple per-step returns of an equity curve.

    Args:
        equities: Equity values ordered by time

    Returns:
        Series of length len(equities) - 1 (empty for fewer than 2 points)
    """
    if len(equities) < 2:
        return pd.Series(dtype=float)
    return pd.Series(list(equities), dtype=float).pct_change().dropna()


def calculate_max_drawdown(equities: Sequence[float]) -> float:
    """Largest peak-to-trough decline, in percent.

    Args:
        equities: Equity values ordered by time

    Returns:
        Maximum drawdown as a positive percentage (0 for fewer than 2 points)

    Example:
        >>> calculate_max_drawdown([10000, 12000, 9000, 11000])
        25.0
    """
    if len(equities) < 2:
        return 0.0

    curve = np.asarray(equities, dtype=float)
    running_max = np.maximum.accumulate(curve)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdown = np.where(running_max > 0, (running_max - curve) / running_max, 0.0)

    return float(drawdown.max() * 100)


def calculate_sharpe_ratio(equities: Sequence[float]) -> float:
    """Sharpe ratio of per-step simple returns.

    mean(r) / std(r) * sqrt(N) with population standard deviation and no
    risk-free rate. Not annualized: values are comparable only between
    runs that use the same step size.

    Returns:
        Sharpe ratio, or 0.0 with fewer than 2 snapshots or zero variance
    """
    returns = calculate_returns(equities)
    if returns.empty:
        return 0.0

    std = returns.std(ddof=0)
    if not std or math.isnan(std) or std < 1e-12:
        return 0.0

    return float(returns.mean() / std * math.sqrt(len(returns)))


def calculate_trade_stats(trades: Sequence[TradeRecord]) -> dict:
    """Win/loss statistics over closing (SELL) trades.

    Returns:
        Dict with wins, losses, win_rate (percent), avg_win, avg_loss
        (positive magnitude) and profit_factor
    """
    closed = [
        t for t in trades
        if t.side == TradeSide.SELL and t.realized_pnl is not None
    ]
    winning = [t.realized_pnl for t in closed if t.realized_pnl > 0]
    losing = [t.realized_pnl for t in closed if t.realized_pnl < 0]

    total_wins = sum(winning)
    total_losses = abs(sum(losing))

    return {
        "closed_trades": len(closed),
        "wins": len(winning),
        "losses": len(losing),
        "win_rate": (len(winning) / len(closed) * 100) if closed else 0.0,
        "avg_win": (total_wins / len(winning)) if winning else 0.0,
        "avg_loss": (total_losses / len(losing)) if losing else 0.0,
        "profit_factor": (total_wins / total_losses) if total_losses > 0 else 0.0,
    }
