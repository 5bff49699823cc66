"""Grid trading contestant.

Buys pivot lows and sells pivot highs of a rolling window:

1. Pivot lows/highs of the aggregated window become buy/sell levels
2. Price at or below an untriggered buy level -> buy 1/N of the cash
3. Price at or above an untriggered sell level -> sell 1/remaining of the position
4. Risk controls: hard stop-loss below the lowest buy level and take-profit
   protection on the whole position

The grid is recalculated when it is empty or when every level on one side
has triggered.
"""

from dataclasses import dataclass, replace
from typing import Optional

from ..database import MarketDataReader
from ..exceptions import InvalidConfigValueError
from ..indicators import (
    VolatilityResult,
    aggregate_by_interval,
    analyze_volatility,
    get_recent_pivots,
    validate_aggregate_interval,
)
from ..validation import validate_positive_int, validate_positive_number
from .base import Contestant

LEVEL_SPACING = 0.015
BUY_BAND = 0.999
SELL_BAND = 1.001
BUY_COOLDOWN_TICKS = 3
MIN_NOTIONAL = 10.0
MAX_WINDOW_CANDLES = 50000


@dataclass(frozen=True)
class GridConfig:
    """Grid parameters.

    Percentages are in percent units (2 means 2%).
    """

    grid_levels: int = 3
    pivot_n: int = 3
    window_days: int = 7
    volatility_min: float = 2.0
    volatility_max: float = 50.0
    stop_loss_percent: float = 2.0
    take_profit_percent: float = 4.0
    aggregate_interval: str = "15m"

    def __post_init__(self):
        validate_positive_int(self.grid_levels, "gridLevels")
        validate_positive_int(self.pivot_n, "pivotN")
        validate_positive_int(self.window_days, "windowDays")
        validate_positive_number(self.stop_loss_percent, "stopLossPercent")
        validate_positive_number(self.take_profit_percent, "takeProfitPercent")
        if self.volatility_min < 0 or self.volatility_max < self.volatility_min:
            raise InvalidConfigValueError(
                f"Invalid volatility band [{self.volatility_min}, {self.volatility_max}]"
            )
        validate_aggregate_interval(self.aggregate_interval)

    @property
    def window_ms(self) -> int:
        return self.window_days * 24 * 60 * 60 * 1000

    @classmethod
    def from_settings(cls, settings: dict) -> "GridConfig":
        """Build from camelCase run-configuration settings; missing keys keep defaults."""
        mapping = {
            "gridLevels": "grid_levels",
            "pivotN": "pivot_n",
            "windowDays": "window_days",
            "volatilityMin": "volatility_min",
            "volatilityMax": "volatility_max",
            "stopLossPercent": "stop_loss_percent",
            "takeProfitPercent": "take_profit_percent",
            "aggregateInterval": "aggregate_interval",
        }
        kwargs = {
            attr: settings[key]
            for key, attr in mapping.items()
            if settings.get(key) is not None
        }
        return cls(**kwargs)


@dataclass(frozen=True)
class GridState:
    """One grid generation.

    Buy levels ascend (lowest first) and sell levels descend (highest
    first). Replaced as a whole on recalculation; only the triggered flags
    change in between.
    """

    buy_levels: tuple[float, ...] = ()
    sell_levels: tuple[float, ...] = ()
    buy_triggered: tuple[bool, ...] = ()
    sell_triggered: tuple[bool, ...] = ()
    last_calc_timestamp: int = 0
    volatility: Optional[VolatilityResult] = None
    paused: bool = False
    synthetic_buys: int = 0
    synthetic_sells: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.buy_levels and not self.sell_levels

    @property
    def all_buys_triggered(self) -> bool:
        return bool(self.buy_triggered) and all(self.buy_triggered)

    @property
    def all_sells_triggered(self) -> bool:
        return bool(self.sell_triggered) and all(self.sell_triggered)

    def with_buy_triggered(self, index: int) -> "GridState":
        flags = list(self.buy_triggered)
        flags[index] = True
        return replace(self, buy_triggered=tuple(flags))

    def with_sell_triggered(self, index: int) -> "GridState":
        flags = list(self.sell_triggered)
        flags[index] = True
        return replace(self, sell_triggered=tuple(flags))

    def to_dict(self) -> dict:
        return {
            "buy_levels": list(self.buy_levels),
            "sell_levels": list(self.sell_levels),
            "buy_triggered": list(self.buy_triggered),
            "sell_triggered": list(self.sell_triggered),
            "last_calc_timestamp": self.last_calc_timestamp,
            "volatility": self.volatility.to_dict() if self.volatility else None,
            "paused": self.paused,
        }


def build_levels(
    buy_candidates: list[float],
    sell_candidates: list[float],
    price: float,
    grid_levels: int,
    spacing: float = LEVEL_SPACING,
) -> tuple[list[float], list[float]]:
    """Filter pivot levels around price and pad both sides to grid_levels.

    Buys must sit strictly below price x 0.999 and sells strictly above
    price x 1.001. Missing levels are synthesized `spacing` apart, outward
    from the farthest real level, or from price x (1 -/+ spacing) when a
    side has none. Buys come back ascending and sells descending, so
    the nearest level is last on both sides.
    """
    buys = sorted(p for p in buy_candidates if p < price * BUY_BAND)
    sells = sorted(p for p in sell_candidates if p > price * SELL_BAND)

    while len(buys) < grid_levels:
        base = buys[0] if buys else price * (1 - spacing)
        buys.insert(0, base * (1 - spacing))

    while len(sells) < grid_levels:
        base = sells[-1] if sells else price * (1 + spacing)
        sells.append(base * (1 + spacing))

    return buys[-grid_levels:], sells[:grid_levels][::-1]


class GridContestant(Contestant):
    """Pivot grid contestant.

    Example:
        >>> grid = GridContestant("grid-bot", "Grid Bot", reader, "BTCUSDT",
        ...                       GridConfig(grid_levels=3, window_days=7))
    """

    kind = "grid"
    log_prefix = "[Grid] "

    def __init__(
        self,
        contestant_id: str,
        name: str,
        reader: MarketDataReader,
        symbol: str,
        config: Optional[GridConfig] = None,
    ):
        super().__init__(contestant_id, name, reader, symbol)
        self.config = config or GridConfig()
        self.state = GridState()
        self.tick_count = 0
        # Tick 0 counts as a buy, so nothing is bought during the first ticks
        self.last_buy_tick = 0

    async def on_tick(self) -> None:
        self.tick_count += 1

        price = await self.latest_price()
        if price is None:
            return

        self.portfolio.update_price(self.symbol, price)

        if self.state.is_empty or self.state.all_buys_triggered or self.state.all_sells_triggered:
            if self.state.is_empty:
                reason = "initialization"
            elif self.state.all_buys_triggered:
                reason = "all buy levels triggered"
            else:
                reason = "all sell levels triggered"
            self.log(f"Recalculating grid ({reason})", level="debug")
            await self.recalculate_grid()

        if not self.state.is_empty:
            self._evaluate(price)

        self.portfolio.take_snapshot()

    def _evaluate(self, price: float) -> None:
        """Risk checks first; either one ends the tick's evaluation."""
        if self.check_stop_loss(price):
            return
        if self.check_take_profit(price):
            return
        self.check_buy_levels(price)
        self.check_sell_levels(price)

    async def recalculate_grid(self) -> bool:
        """Rebuild levels from the window ending now.

        Returns:
            False when there is not enough history (state is left unchanged)
        """
        now = self.clock.now()
        n = self.config.pivot_n

        candles = await self.reader.query_candles(
            self.symbol,
            "1m",
            start=now - self.config.window_ms,
            end=now,
            limit=MAX_WINDOW_CANDLES,
        )
        if len(candles) < 2 * n + 1:
            self.log(f"Not enough candles to find pivots ({len(candles)})", level="warning")
            return False

        aggregated = aggregate_by_interval(candles, self.config.aggregate_interval)
        if len(aggregated) < 2 * n + 1:
            self.log(
                f"Not enough {self.config.aggregate_interval} candles to find pivots "
                f"({len(aggregated)} from {len(candles)} 1m)",
                level="warning",
            )
            return False

        volatility = analyze_volatility(
            aggregated, self.config.volatility_min, self.config.volatility_max
        )
        if not volatility.in_range:
            self.log(
                f"Volatility {volatility.volatility:.2f}% outside "
                f"[{self.config.volatility_min}%, {self.config.volatility_max}%], trading continues",
                volatility=volatility.volatility,
            )

        pivots = get_recent_pivots(aggregated, n, self.config.grid_levels)
        price = aggregated[-1].close

        buys, sells = build_levels(pivots.lows, pivots.highs, price, self.config.grid_levels)
        real_buys = sum(1 for p in pivots.lows if p < price * BUY_BAND)
        real_sells = sum(1 for p in pivots.highs if p > price * SELL_BAND)

        self.state = GridState(
            buy_levels=tuple(buys),
            sell_levels=tuple(sells),
            buy_triggered=tuple(False for _ in buys),
            sell_triggered=tuple(False for _ in sells),
            last_calc_timestamp=now,
            volatility=volatility,
            paused=False,
            synthetic_buys=max(len(buys) - real_buys, 0),
            synthetic_sells=max(len(sells) - real_sells, 0),
        )

        self.log(
            f"Grid recalculated at {price:.0f} | buys {[round(p) for p in buys]} | "
            f"sells {[round(p) for p in sells]} | volatility {volatility.volatility:.2f}%",
            buy_levels=buys,
            sell_levels=sells,
            synthetic_buys=self.state.synthetic_buys,
            synthetic_sells=self.state.synthetic_sells,
        )
        return True

    def check_stop_loss(self, price: float) -> bool:
        """Liquidate everything below lowest buy x (1 - stop loss %)."""
        if not self.state.buy_levels:
            return False

        stop_price = self.state.buy_levels[0] * (1 - self.config.stop_loss_percent / 100)
        if price >= stop_price:
            return False

        quantity = self.held_quantity()
        if quantity > 0:
            self.portfolio.execute_trade(
                self.symbol,
                "SELL",
                price,
                quantity,
                f"Stop-loss (price {price:.0f} < stop {stop_price:.0f})",
            )
            self.log(
                f"Stop-loss hit, position closed at {price:.0f} < {stop_price:.0f}",
                level="warning",
                price=price,
                stop_price=stop_price,
            )
            self.state = replace(self.state, paused=True)
        return True

    def check_take_profit(self, price: float) -> bool:
        """Sell half the position once the unrealized gain reaches the threshold."""
        position = self.portfolio.get_position(self.symbol)
        if position is None or position.quantity <= 0:
            return False

        profit_pct = (price - position.avg_price) / position.avg_price * 100
        if profit_pct < self.config.take_profit_percent:
            return False

        self.portfolio.execute_trade(
            self.symbol,
            "SELL",
            price,
            position.quantity * 0.5,
            f"Take-profit ({profit_pct:.1f}% >= {self.config.take_profit_percent}%)",
        )
        self.log(
            f"Take-profit: {profit_pct:.1f}% gain, sold 50% at {price:.0f}",
            price=price,
            profit_pct=profit_pct,
        )
        return True

    def check_buy_levels(self, price: float) -> None:
        for i, level in enumerate(self.state.buy_levels):
            if self.state.buy_triggered[i] or price > level:
                continue

            if self.tick_count - self.last_buy_tick < BUY_COOLDOWN_TICKS:
                continue

            balance = self.portfolio.balance
            amount = balance / self.config.grid_levels
            if amount < MIN_NOTIONAL:
                self.state = self.state.with_buy_triggered(i)
                self.log(f"Buy L{i + 1} skipped (balance {balance:.0f})", level="debug")
                continue

            success = self.portfolio.execute_trade(
                self.symbol,
                "BUY",
                price,
                amount / price,
                f"Grid buy L{i + 1} (level {level:.0f}, price {price:.0f})",
            )
            self.state = self.state.with_buy_triggered(i)

            if success:
                self.last_buy_tick = self.tick_count
                self.log(
                    f"Buy L{i + 1} at {price:.0f} <= {level:.0f}, amount {amount:.0f}",
                    price=price,
                    grid_level=level,
                )
            else:
                self.log(f"Buy L{i + 1} failed at {price:.0f}", level="warning")

    def check_sell_levels(self, price: float) -> None:
        for i, level in enumerate(self.state.sell_levels):
            if self.state.sell_triggered[i] or price < level:
                continue

            quantity = self.held_quantity()
            if quantity * price < MIN_NOTIONAL:
                continue

            remaining = sum(1 for t in self.state.sell_triggered if not t)
            sell_quantity = quantity / remaining

            success = self.portfolio.execute_trade(
                self.symbol,
                "SELL",
                price,
                sell_quantity,
                f"Grid sell H{i + 1} (level {level:.0f}, price {price:.0f})",
            )
            self.state = self.state.with_sell_triggered(i)

            if success:
                self.log(
                    f"Sell H{i + 1} at {price:.0f} >= {level:.0f}, quantity {sell_quantity:.4f} "
                    f"(1/{remaining})",
                    price=price,
                    grid_level=level,
                )
            else:
                self.log(f"Sell H{i + 1} failed at {price:.0f}", level="warning")
