"""Periodic-investment (DCA) contestant.

Buys a fixed quote amount every `interval_minutes` of simulated time,
regardless of price.
"""

from ..database import MarketDataReader
from ..validation import validate_positive_int, validate_positive_number
from .base import Contestant

DEFAULT_INTERVAL_MINUTES = 7 * 24 * 60


class DCAContestant(Contestant):
    """Dollar-cost averaging.

    The last-investment time starts at 0 so the first tick invests. It is
    moved forward on every attempt that found a price, successful or not,
    so an empty wallet is not retried every tick.

    Example:
        >>> dca = DCAContestant("dca-bot", "DCA Bot", reader, "BTCUSDT",
        ...                     invest_amount=500, interval_minutes=10080)
    """

    kind = "dca"
    log_prefix = "[DCA] "

    def __init__(
        self,
        contestant_id: str,
        name: str,
        reader: MarketDataReader,
        symbol: str,
        invest_amount: float,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
    ):
        super().__init__(contestant_id, name, reader, symbol)
        self.invest_amount = validate_positive_number(invest_amount, "investAmount")
        self.interval_minutes = validate_positive_int(interval_minutes, "intervalMinutes")
        self.last_invest_time = 0

    @property
    def interval_ms(self) -> int:
        return self.interval_minutes * 60 * 1000

    async def on_tick(self) -> None:
        now = self.clock.now()

        if now - self.last_invest_time >= self.interval_ms:
            price = await self.latest_price()
            if price is not None:
                quantity = self.invest_amount / price
                success = self.portfolio.execute_trade(
                    self.symbol, "BUY", price, quantity, "Periodic investment"
                )
                self.last_invest_time = now

                if success:
                    self.log(
                        f"Invested {self.invest_amount:.2f} at {price:.2f}",
                        price=price,
                        quantity=quantity,
                    )
                else:
                    self.log(
                        f"Investment of {self.invest_amount:.2f} failed (balance "
                        f"{self.portfolio.balance:.2f})",
                        level="warning",
                        price=price,
                    )

        self.portfolio.take_snapshot()
