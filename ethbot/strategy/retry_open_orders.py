"""Open-order recovery.

Implements ``StrategyProtocol``.  Cancels every unfilled order and
resubmits it at the current price.  Failures are isolated per order: one
order that cannot be cancelled or resubmitted never stops the others.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ethbot.broker.models import MIN_ORDER_AMOUNT, OpenOrder, OrderResponse
from ethbot.errors import EthbotError, RecoveryError
from ethbot.risk.position_sizer import PositionSizer
from ethbot.strategy.base import StrategyBase, StrategyResult

logger = logging.getLogger("ethbot")


class RetryOpenOrdersStrategy(StrategyBase):
    """Cancel-and-resubmit pass over stuck orders.

    SELL orders are resubmitted for the full current ETH balance; BUY
    orders reuse their original pending amount.

    Args:
        sizer: Provides the sell amount from live balances.
        pacing_seconds: Pause between a cancel and the resubmission.
        sleep: Awaitable sleep, replaceable in tests.
    """

    name = "retry_open_orders"
    tag = "RETRY"

    def __init__(
        self,
        sizer: PositionSizer,
        pacing_seconds: float = 2.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._sizer = sizer
        self._pacing = pacing_seconds
        self._sleep = sleep or asyncio.sleep

    async def execute(self, broker, config) -> Optional[StrategyResult]:
        try:
            open_orders = await broker.get_open_orders()
        except EthbotError as exc:
            logger.error("retry_open_orders: could not fetch open orders: %s", exc)
            self._emit("error", None, self._clock(), f"open orders unavailable: {exc}")
            return None

        if not open_orders:
            logger.debug("retry_open_orders: no open orders")
            return None

        resubmitted: list[OrderResponse] = []
        for order in open_orders:
            try:
                resubmitted.append(await self._resubmit(broker, config, order))
            except RecoveryError as exc:
                logger.error("retry_open_orders: %s", exc)
                self._emit("error", order.rate, self._clock(), str(exc))

        logger.info(
            "retry_open_orders: resubmitted %d of %d open order(s)",
            len(resubmitted), len(open_orders),
        )
        if not resubmitted:
            return None
        return StrategyResult(orders=tuple(resubmitted))

    async def _resubmit(self, broker, config, order: OpenOrder) -> OrderResponse:
        """Cancel *order* and place a replacement at the current price.

        Raises ``RecoveryError`` wrapping whichever step failed.
        """
        if order.side == "buy" and (
            order.pending_amount is None or order.pending_amount < MIN_ORDER_AMOUNT
        ):
            # Checked before cancelling so the order is left untouched.
            raise RecoveryError(
                order.order_id,
                f"buy order has no resubmittable pending amount ({order.pending_amount})",
            )

        try:
            await broker.cancel_order(order.order_id)
        except Exception as exc:
            raise RecoveryError(order.order_id, f"cancel failed: {exc}", exc) from exc

        await self._sleep(self._pacing)

        try:
            price = await broker.get_price()
            if order.side == "sell":
                amount = await self._sizer.sell_amount(broker)
            else:
                amount = order.pending_amount
            now = self._clock()
            response = await self._place(
                broker, config, order.side, price, amount, now,
                original_order_id=order.order_id,
                original_rate=order.rate,
            )
        except Exception as exc:
            raise RecoveryError(order.order_id, f"resubmit failed: {exc}", exc) from exc

        self._emit(
            order.side, price, now,
            f"resubmitted order {order.order_id} (created {order.created_at})",
            {"original_rate": order.rate, "amount": amount},
        )
        return response
