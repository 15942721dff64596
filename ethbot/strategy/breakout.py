"""24-hour range breakout strategy.

Implements ``StrategyProtocol``.  Buys a fixed minimum amount when the
price clears the 24h high by more than 1 %, sells when it breaks the 24h
low by more than 1 %, and restarts the range after either signal.
"""

import logging
from typing import Iterable, Optional

from ethbot.broker.models import MIN_ORDER_AMOUNT
from ethbot.strategy.base import StrategyBase, StrategyResult
from ethbot.strategy.models import PriceSample
from ethbot.strategy.signals import BREAKOUT_THRESHOLD, BreakoutState, evaluate_breakout

logger = logging.getLogger("ethbot")


class BreakoutStrategy(StrategyBase):
    """Range breakout over a time-bounded 24h window."""

    name = "breakout"
    tag = "BO"
    AMOUNT: float = MIN_ORDER_AMOUNT

    def __init__(self, threshold: float = BREAKOUT_THRESHOLD, **kwargs) -> None:
        super().__init__(**kwargs)
        self.threshold = threshold
        self.state = BreakoutState()

    def restore(self, samples: Iterable[PriceSample]) -> None:
        """Rebuild the range from recorded samples without trading."""
        self.state = BreakoutState(self.state.window.extend(samples))
        logger.info("breakout restored %d samples", len(self.state.window))

    async def execute(self, broker, config) -> Optional[StrategyResult]:
        price = await broker.get_price()
        now = self._clock()
        sample_at = self.state.window.stamp(now)
        if sample_at != now:
            logger.warning(
                "%s: clock stepped back to %s, using %s", self.name, now, sample_at,
            )
        outcome = evaluate_breakout(
            self.state, PriceSample(price, sample_at), self.threshold,
        )
        self.state = outcome.state
        self.last_insight = outcome.insight
        signal = outcome.signal

        if signal is None:
            logger.debug("breakout: %.0f inside range %s", price, outcome.insight)
            self._emit(
                "hold", price, now, outcome.insight.get("result", ""), outcome.insight,
            )
            return None

        self._emit(signal.direction, price, now, signal.reason, signal.indicators)
        order = await self._place(
            broker, config, signal.direction, price, self.AMOUNT, now,
        )
        return StrategyResult(orders=(order,), signal=signal)
