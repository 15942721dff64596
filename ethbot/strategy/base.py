"""Strategy protocol, shared result type and common detector plumbing.

Defines the interface that all strategies must implement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, runtime_checkable
from zoneinfo import ZoneInfo

from ethbot.api.routers import push_decision
from ethbot.broker.models import OrderRequest, OrderResponse
from ethbot.strategy.models import DecisionEvent, TradeSignal

logger = logging.getLogger("ethbot")


@dataclass(frozen=True)
class StrategyResult:
    """Orders a strategy placed during one ``execute`` call."""

    orders: tuple[OrderResponse, ...]
    signal: Optional[TradeSignal] = None


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all trading strategies must satisfy."""

    name: str

    async def execute(self, broker, config) -> Optional[StrategyResult]:
        """Run one evaluation.  Returns the orders placed, or None."""
        ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StrategyBase:
    """Plumbing shared by every strategy: decision hook, trade log, clock.

    Args:
        on_decision: Observability hook called with a ``DecisionEvent`` for
            every decision.  Defaults to the status-API ring buffer.
        trade_log: Optional ``TradeLogRepo``.  Written after an order is
            accepted; its failures are logged and ignored.
        clock: Returns the current aware ``datetime``.
    """

    name: str = "strategy"
    tag: str = ""

    def __init__(
        self,
        on_decision: Optional[Callable[[DecisionEvent], None]] = None,
        trade_log=None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._on_decision = on_decision or push_decision
        self._trade_log = trade_log
        self._clock = clock or utc_now
        self.last_insight: dict = {}

    def _emit(
        self,
        signal: str,
        price: Optional[float],
        at: datetime,
        reason: str = "",
        indicators: Optional[dict] = None,
    ) -> None:
        self._on_decision(
            DecisionEvent(
                strategy=self.name,
                signal=signal,
                price=price,
                evaluated_at=at.isoformat(),
                reason=reason,
                indicators=dict(indicators or {}),
            )
        )

    async def _place(
        self,
        broker,
        config,
        side: str,
        price: float,
        amount: float,
        at: datetime,
        **extra,
    ) -> OrderResponse:
        """Submit one order, then append it to the trade log (best-effort)."""
        order = OrderRequest(rate=price, amount=amount, side=side, pair=config.trade_pair)
        response = await broker.create_order(order)
        logger.info(
            "%s placed %s order %s: %.4f ETH @ %.0f",
            self.name, side, response.order_id, amount, price,
        )
        self._log_trade(config, side, price, amount, at, **extra)
        return response

    def _log_trade(self, config, side, price, amount, at, **extra) -> None:
        if self._trade_log is None:
            return
        tag = f"{self.tag}-{side.upper()}"
        try:
            local_ts = at.astimezone(ZoneInfo(config.timezone))
            self._trade_log.append_record(tag, local_ts, amount, price, **extra)
        except Exception as exc:
            logger.warning("%s could not append %s to trade log: %s", self.name, tag, exc)
