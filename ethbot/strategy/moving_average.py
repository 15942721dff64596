"""Moving-average cross strategy.

Implements ``StrategyProtocol``.  Buys on a golden cross and sells on a
dead cross, each at most once per actual crossover.  Buy size comes from
the ``PositionSizer``; sells liquidate the ETH balance.
"""

import logging
from typing import Iterable, Optional

from ethbot.risk.position_sizer import PositionSizer
from ethbot.strategy.base import StrategyBase, StrategyResult
from ethbot.strategy.models import PriceSample
from ethbot.strategy.signals import CrossoverState, evaluate_crossover

logger = logging.getLogger("ethbot")


class MovingAverageCrossStrategy(StrategyBase):
    """SMA(short) vs SMA(long) cross with a latched cross state.

    Args:
        sizer: Converts balances into an order amount.
        short_term: Short SMA period (default 10).
        long_term: Long SMA period (default 50).
    """

    name = "moving_average"
    tag = "MA"

    def __init__(
        self,
        sizer: PositionSizer,
        short_term: int = 10,
        long_term: int = 50,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        if not 0 < short_term < long_term:
            raise ValueError(
                f"short_term must be positive and below long_term, got {short_term} / {long_term}"
            )
        self._sizer = sizer
        self.short_term = short_term
        self.long_term = long_term
        self.state = CrossoverState.initial(long_term)

    def restore(self, samples: Iterable[PriceSample]) -> None:
        """Refill the window from recorded samples.  The cross state stays NONE."""
        samples = list(samples)
        self.state = CrossoverState(
            window=self.state.window.extend(samples),
            cross=self.state.cross,
            ticks=self.state.ticks + len(samples),
        )
        logger.info("moving_average restored %d samples", len(samples))

    async def execute(self, broker, config) -> Optional[StrategyResult]:
        price = await broker.get_price()
        now = self._clock()
        sample_at = self.state.window.stamp(now)
        if sample_at != now:
            logger.warning(
                "%s: clock stepped back to %s, using %s", self.name, now, sample_at,
            )
        outcome = evaluate_crossover(
            self.state, PriceSample(price, sample_at), self.short_term, self.long_term,
        )
        self.state = outcome.state
        self.last_insight = outcome.insight
        signal = outcome.signal

        if signal is None:
            self._emit(
                "hold", price, now, outcome.insight.get("result", ""), outcome.insight,
            )
            return None

        self._emit(signal.direction, price, now, signal.reason, signal.indicators)
        if signal.direction == "buy":
            amount = await self._sizer.buy_amount(broker, price)
        else:
            amount = await self._sizer.sell_amount(broker)

        order = await self._place(
            broker, config, signal.direction, price, amount, now,
            short_ma=signal.indicators["short_ma"],
            long_ma=signal.indicators["long_ma"],
        )
        return StrategyResult(orders=(order,), signal=signal)
