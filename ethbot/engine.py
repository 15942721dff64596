"""ethbot — Strategy orchestrator (one evaluation cycle per call).

Runs the ordered strategy list strictly in sequence with a fixed pause
after each one, so only one exchange call is ever in flight.  A failing
strategy is logged and skipped; it never blocks the rest of the cycle.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

from ethbot.api.routers import push_decision, update_bot_status
from ethbot.config import Config
from ethbot.strategy.base import StrategyProtocol
from ethbot.strategy.models import DecisionEvent

logger = logging.getLogger("ethbot.engine")

_MAX_HISTORY = 100  # per-cycle results kept by run()


class StrategyOrchestrator:
    """Owns the strategy list and runs evaluation cycles.

    Args:
        config: Application configuration.
        broker: A ``CoincheckClient`` (or compatible duck-type / mock).
        strategies: Ordered strategies implementing ``StrategyProtocol``.
        trade_log: Optional ``TradeLogRepo``; when set each cycle first
                   records the current price.
        on_decision: Hook receiving a ``DecisionEvent`` for strategy errors.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        config: Config,
        broker,
        strategies: Sequence[StrategyProtocol],
        trade_log=None,
        on_decision: Optional[Callable[[DecisionEvent], None]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self._config = config
        self._broker = broker
        self._strategies = list(strategies)
        self._trade_log = trade_log
        self._on_decision = on_decision or push_decision
        self._sleep = sleep or asyncio.sleep
        self._running: bool = False
        self._cycle_count: int = 0

    @property
    def strategy_names(self) -> list[str]:
        return [getattr(s, "name", type(s).__name__) for s in self._strategies]

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    # ── Single cycle ─────────────────────────────────────────────────────

    async def record_price(self, utc_now: datetime) -> Optional[float]:
        """Append the current price to the price history (best-effort)."""
        if self._trade_log is None:
            return None
        try:
            price = await self._broker.get_price()
            self._trade_log.record_price(utc_now, price)
            return price
        except Exception as exc:
            logger.warning("Price recording failed: %s", exc)
            return None

    async def run_cycle(self, utc_now: Optional[datetime] = None) -> list[dict]:
        """Execute every strategy once, in order.

        Returns one dict per strategy:

        - ``{"strategy": ..., "action": "order_placed", "order_ids": [...]}``
        - ``{"strategy": ..., "action": "no_signal"}``
        - ``{"strategy": ..., "action": "error", "reason": "..."}``

        Args:
            utc_now: Cycle start time.  Defaults to ``datetime.now(UTC)``.
        """
        if utc_now is None:
            utc_now = datetime.now(timezone.utc)
        self._cycle_count += 1

        await self.record_price(utc_now)

        results: list[dict] = []
        for strategy, name in zip(self._strategies, self.strategy_names):
            try:
                result = await strategy.execute(self._broker, self._config)
            except Exception as exc:
                logger.error("Strategy '%s' failed: %s", name, exc)
                results.append({"strategy": name, "action": "error", "reason": str(exc)})
                update_bot_status(last_error=f"{name}: {exc}")
                self._report_error(name, exc)
            else:
                if result is not None and result.orders:
                    results.append({
                        "strategy": name,
                        "action": "order_placed",
                        "order_ids": [o.order_id for o in result.orders],
                    })
                else:
                    results.append({"strategy": name, "action": "no_signal"})
                logger.info("Strategy '%s' executed", name)

            await self._sleep(self._config.pacing_seconds)

        update_bot_status(
            cycle_count=self._cycle_count,
            last_cycle_at=utc_now.isoformat(),
        )
        return results

    def _report_error(self, name: str, exc: Exception) -> None:
        event = DecisionEvent(
            strategy=name,
            signal="error",
            price=None,
            evaluated_at=datetime.now(timezone.utc).isoformat(),
            reason=str(exc),
        )
        try:
            self._on_decision(event)
        except Exception as hook_exc:
            logger.warning("Decision hook failed for '%s': %s", name, hook_exc)

    # ── Scheduler loop ───────────────────────────────────────────────────

    def stop(self) -> None:
        """Signal the loop to stop after the current cycle."""
        self._running = False

    async def run(
        self,
        poll_interval: Optional[int] = None,
        max_cycles: int = 0,
    ) -> list[list[dict]]:
        """Run cycles on a fixed cadence until stopped.

        Args:
            poll_interval: Seconds to wait between cycles.  Defaults to
                           ``config.poll_interval_seconds``.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            Per-cycle result lists, the last ``_MAX_HISTORY`` cycles only.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds

        self._running = True
        update_bot_status(
            running=True,
            pair=self._config.trade_pair,
            strategies=self.strategy_names,
            started_at=datetime.now(timezone.utc).isoformat(),
        )
        history: list[list[dict]] = []
        cycle = 0

        while self._running:
            cycle += 1
            logger.info("--- Cycle %d starting ---", cycle)
            try:
                results = await self.run_cycle()
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                update_bot_status(last_error=f"cycle {cycle}: {exc}")
                results = [{"action": "error", "reason": str(exc)}]
            history.append(results)
            del history[:-_MAX_HISTORY]

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep: checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await self._sleep(1)

        self._running = False
        update_bot_status(running=False)
        return history
