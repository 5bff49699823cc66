"""
Unit tests for snapshot-based performance metrics.

Tests ensure:
- Max drawdown is peak-to-trough in percent
- Sharpe ratio is mean/std(ddof=0) * sqrt(N), not annualized
- Win/loss statistics only count closing trades
- Edge cases (empty, single point, zero variance) return 0
"""

import math

import pytest

from trading_arena.analytics import (
    calculate_max_drawdown,
    calculate_returns,
    calculate_sharpe_ratio,
    calculate_trade_stats,
)
from trading_arena.models import TradeRecord, TradeSide


def _trade(n, side, pnl=None):
    return TradeRecord(
        id=f"trade-{n}",
        symbol="BTCUSDT",
        side=side,
        price=100.0,
        quantity=1.0,
        total=100.0,
        timestamp=n,
        realized_pnl=pnl,
    )


class TestMaxDrawdown:
    """Test suite for max drawdown."""

    def test_peak_to_trough(self):
        assert calculate_max_drawdown([10000, 12000, 9000, 11000]) == pytest.approx(25.0)

    def test_monotonic_curve_has_no_drawdown(self):
        assert calculate_max_drawdown([100, 101, 102, 110]) == 0.0

    @pytest.mark.parametrize("equities", [[], [10000]])
    def test_short_series(self, equities):
        assert calculate_max_drawdown(equities) == 0.0


class TestSharpeRatio:
    """Test suite for the per-step Sharpe ratio."""

    def test_known_value(self):
        # Returns 0.1, 0.1, 0.2 -> mean / pstdev = 2*sqrt(2), times sqrt(3)
        sharpe = calculate_sharpe_ratio([100, 110, 121, 145.2])
        assert sharpe == pytest.approx(math.sqrt(24), rel=1e-6)

    def test_flat_curve_is_zero(self):
        assert calculate_sharpe_ratio([10000] * 50) == 0.0

    @pytest.mark.parametrize("equities", [[], [10000]])
    def test_short_series(self, equities):
        assert calculate_sharpe_ratio(equities) == 0.0

    def test_sign_follows_mean_return(self):
        assert calculate_sharpe_ratio([100, 102, 101, 105, 107]) > 0
        assert calculate_sharpe_ratio([100, 98, 99, 95, 93]) < 0

    def test_returns_length(self):
        assert len(calculate_returns([1, 2, 3])) == 2
        assert calculate_returns([1]).empty


class TestTradeStats:
    """Test suite for win/loss statistics."""

    def test_stats_over_closing_trades(self):
        trades = [
            _trade(1, TradeSide.BUY),
            _trade(2, TradeSide.SELL, 100.0),
            _trade(3, TradeSide.SELL, -50.0),
            _trade(4, TradeSide.SELL, 200.0),
        ]

        stats = calculate_trade_stats(trades)

        assert stats["closed_trades"] == 3
        assert stats["wins"] == 2
        assert stats["losses"] == 1
        assert stats["win_rate"] == pytest.approx(200 / 3)
        assert stats["avg_win"] == pytest.approx(150)
        assert stats["avg_loss"] == pytest.approx(50)
        assert stats["profit_factor"] == pytest.approx(6)

    def test_no_closing_trades(self):
        stats = calculate_trade_stats([_trade(1, TradeSide.BUY)])

        assert stats["win_rate"] == 0.0
        assert stats["profit_factor"] == 0.0
