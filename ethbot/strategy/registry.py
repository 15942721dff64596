"""Strategy registry — maps strategy names to factories.

Used by the CLI to build the orchestrator's ordered strategy list from
``Config.strategies``.
"""

from typing import Callable, Optional

from ethbot.config import Config
from ethbot.risk.position_sizer import PositionSizer
from ethbot.strategy.base import StrategyProtocol, utc_now
from ethbot.strategy.breakout import BreakoutStrategy
from ethbot.strategy.moving_average import MovingAverageCrossStrategy
from ethbot.strategy.retry_open_orders import RetryOpenOrdersStrategy
from ethbot.strategy.rsi import RSIStrategy
from ethbot.strategy.signals import BREAKOUT_LOOKBACK


def _breakout(config: Config, sizer: PositionSizer, **deps) -> StrategyProtocol:
    return BreakoutStrategy(**deps)


def _moving_average(config: Config, sizer: PositionSizer, **deps) -> StrategyProtocol:
    return MovingAverageCrossStrategy(
        sizer, short_term=config.ma_short_term, long_term=config.ma_long_term, **deps,
    )


def _rsi(config: Config, sizer: PositionSizer, **deps) -> StrategyProtocol:
    return RSIStrategy(period=config.rsi_period, **deps)


def _retry_open_orders(config: Config, sizer: PositionSizer, **deps) -> StrategyProtocol:
    return RetryOpenOrdersStrategy(sizer, pacing_seconds=config.pacing_seconds, **deps)


STRATEGY_REGISTRY: dict[str, Callable[..., StrategyProtocol]] = {
    "breakout": _breakout,
    "moving_average": _moving_average,
    "rsi": _rsi,
    "retry_open_orders": _retry_open_orders,
}


def get_strategy(name: str, config: Config, **deps) -> StrategyProtocol:
    """Look up and instantiate a strategy by registry key.

    Raises ``KeyError`` if the strategy name is not registered.
    """
    if name not in STRATEGY_REGISTRY:
        raise KeyError(
            f"Unknown strategy '{name}'. "
            f"Available: {', '.join(STRATEGY_REGISTRY.keys())}"
        )
    sizer = PositionSizer(config.risk_per_trade_pct)
    return STRATEGY_REGISTRY[name](config, sizer, **deps)


def build_strategies(
    config: Config,
    names: Optional[tuple[str, ...]] = None,
    on_decision=None,
    trade_log=None,
) -> list[StrategyProtocol]:
    """Instantiate the ordered strategy list.

    With ``price_history_mode == "seeded"`` detectors are rebuilt once from
    the recorded price history.  In ``"memory"`` mode they start empty.
    """
    strategies = [
        get_strategy(name, config, on_decision=on_decision, trade_log=trade_log)
        for name in (names if names is not None else config.strategies)
    ]
    if config.price_history_mode == "seeded" and trade_log is not None:
        restore_from_history(strategies, config, trade_log)
    return strategies


def restore_from_history(strategies, config: Config, trade_log) -> None:
    """Seed detector state from the trade log's price history."""
    now = utc_now()
    for strategy in strategies:
        if isinstance(strategy, BreakoutStrategy):
            strategy.restore(trade_log.historical_samples(now - BREAKOUT_LOOKBACK))
        elif isinstance(strategy, MovingAverageCrossStrategy):
            strategy.restore(
                trade_log.historical_samples(limit=strategy.long_term + 1)
            )
        elif isinstance(strategy, RSIStrategy):
            strategy.restore(trade_log.historical_prices(strategy.period + 1))
