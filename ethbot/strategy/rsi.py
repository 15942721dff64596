"""RSI mean-reversion strategy.

Implements ``StrategyProtocol``.  Buys the minimum amount when RSI drops
below 30, sells it when RSI rises above 70.
"""

import logging
from typing import Iterable, Optional

from ethbot.broker.models import MIN_ORDER_AMOUNT
from ethbot.strategy.base import StrategyBase, StrategyResult
from ethbot.strategy.signals import RSIState, evaluate_rsi

logger = logging.getLogger("ethbot")


class RSIStrategy(StrategyBase):
    """RSI over simple averages of the last *period* price changes."""

    name = "rsi"
    tag = "RSI"
    AMOUNT: float = MIN_ORDER_AMOUNT

    def __init__(self, period: int = 14, **kwargs) -> None:
        super().__init__(**kwargs)
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.period = period
        self.state = RSIState()

    def restore(self, prices: Iterable[float]) -> None:
        """Replay recorded prices through the buffers without trading."""
        count = 0
        for price in prices:
            self.state = evaluate_rsi(self.state, price, self.period).state
            count += 1
        logger.info("rsi restored %d prices", count)

    async def execute(self, broker, config) -> Optional[StrategyResult]:
        price = await broker.get_price()
        now = self._clock()
        outcome = evaluate_rsi(self.state, price, self.period)
        self.state = outcome.state
        self.last_insight = outcome.insight
        signal = outcome.signal

        if signal is None:
            self._emit(
                "hold", price, now, outcome.insight.get("result", ""), outcome.insight,
            )
            return None

        self._emit(signal.direction, price, now, signal.reason, signal.indicators)
        order = await self._place(
            broker, config, signal.direction, price, self.AMOUNT, now,
            rsi=signal.indicators["rsi"],
        )
        return StrategyResult(orders=(order,), signal=signal)
