"""Detector decision logic — pure functions over explicit state.

Each ``evaluate_*`` takes the detector's current state plus the new tick and
returns a ``SignalOutcome`` holding the next state, an optional
``TradeSignal``, and an insight dict for logging and the status API.
No I/O happens here.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Optional

from ethbot.strategy.indicators import calculate_rsi
from ethbot.strategy.models import CrossState, PriceSample, TradeSignal
from ethbot.strategy.window import PriceWindow


BREAKOUT_THRESHOLD = 0.01
BREAKOUT_LOOKBACK = timedelta(hours=24)

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0


@dataclass(frozen=True)
class SignalOutcome:
    """Result of feeding one tick to a detector."""

    state: object
    signal: Optional[TradeSignal]
    insight: dict = field(default_factory=dict)


# ── Breakout ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BreakoutState:
    window: PriceWindow = field(
        default_factory=lambda: PriceWindow.time_bounded(BREAKOUT_LOOKBACK)
    )


def evaluate_breakout(
    state: BreakoutState,
    sample: PriceSample,
    threshold: float = BREAKOUT_THRESHOLD,
) -> SignalOutcome:
    """Compare *sample* with the 24h range recorded before it.

    A close above ``high * (1 + threshold)`` buys, below
    ``low * (1 - threshold)`` sells.  Either signal clears the window so
    the next tick starts a new range.  Inside the range the sample is
    appended.
    """
    window = state.window.evict(sample.timestamp)
    if len(window) == 0:
        return SignalOutcome(
            state=BreakoutState(window.push(sample)),
            signal=None,
            insight={"result": "range_started", "samples": 1},
        )

    high = window.high()
    low = window.low()
    insight = {"high": high, "low": low, "samples": len(window)}

    if sample.price > high * (1 + threshold):
        signal = TradeSignal(
            direction="buy",
            price=sample.price,
            reason=f"Broke 24h high {high:.0f} by more than {threshold:.0%}",
            indicators={"high": high, "low": low},
        )
        return SignalOutcome(
            BreakoutState(window.cleared()), signal, {**insight, "result": "breakout_up"},
        )

    if sample.price < low * (1 - threshold):
        signal = TradeSignal(
            direction="sell",
            price=sample.price,
            reason=f"Broke 24h low {low:.0f} by more than {threshold:.0%}",
            indicators={"high": high, "low": low},
        )
        return SignalOutcome(
            BreakoutState(window.cleared()), signal, {**insight, "result": "breakout_down"},
        )

    return SignalOutcome(
        BreakoutState(window.push(sample)), None, {**insight, "result": "in_range"},
    )


# ── Moving-average cross ─────────────────────────────────────────────────


@dataclass(frozen=True)
class CrossoverState:
    window: PriceWindow
    cross: CrossState = CrossState.NONE
    ticks: int = 0

    @classmethod
    def initial(cls, long_term: int) -> CrossoverState:
        return cls(window=PriceWindow.count_bounded(long_term))


def evaluate_crossover(
    state: CrossoverState,
    sample: PriceSample,
    short_term: int,
    long_term: int,
) -> SignalOutcome:
    """Golden/dead cross detection with a latched cross state.

    Nothing is evaluated until ``long_term + 1`` ticks have been seen.
    A cross fires once; it cannot fire again until the opposite cross
    has been acted on.  ``short_ma == long_ma`` is no signal.
    """
    if not 0 < short_term < long_term:
        raise ValueError(
            f"short_term must be positive and below long_term, got {short_term} / {long_term}"
        )

    window = state.window.push(sample)
    ticks = state.ticks + 1
    if ticks <= long_term:
        return SignalOutcome(
            replace(state, window=window, ticks=ticks),
            None,
            {"result": "warming_up", "ticks": ticks, "required": long_term + 1},
        )

    short_ma = window.mean(short_term)
    long_ma = window.mean(long_term)
    price = sample.price
    indicators = {"short_ma": short_ma, "long_ma": long_ma}
    insight = {**indicators, "cross": state.cross.value}

    if short_ma > long_ma and price > short_ma and state.cross != CrossState.GOLDEN:
        signal = TradeSignal(
            direction="buy",
            price=price,
            reason=f"Golden cross: SMA{short_term} {short_ma:.0f} > SMA{long_term} {long_ma:.0f}",
            indicators=indicators,
        )
        next_state = CrossoverState(window, CrossState.GOLDEN, ticks)
        return SignalOutcome(
            next_state, signal, {**insight, "cross": "golden", "result": "golden_cross"},
        )

    if short_ma < long_ma and price < short_ma and state.cross != CrossState.DEAD:
        signal = TradeSignal(
            direction="sell",
            price=price,
            reason=f"Dead cross: SMA{short_term} {short_ma:.0f} < SMA{long_term} {long_ma:.0f}",
            indicators=indicators,
        )
        next_state = CrossoverState(window, CrossState.DEAD, ticks)
        return SignalOutcome(
            next_state, signal, {**insight, "cross": "dead", "result": "dead_cross"},
        )

    return SignalOutcome(
        CrossoverState(window, state.cross, ticks), None, {**insight, "result": "no_cross"},
    )


# ── RSI ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RSIState:
    gains: tuple[float, ...] = ()
    losses: tuple[float, ...] = ()
    reference: Optional[float] = None  # previous price


def evaluate_rsi(
    state: RSIState,
    price: float,
    period: int = 14,
    oversold: float = RSI_OVERSOLD,
    overbought: float = RSI_OVERBOUGHT,
) -> SignalOutcome:
    """Feed one price to the RSI buffers and decide.

    The first tick only seeds the buffers with a zero entry.  Each later
    tick records ``price - previous price`` as a gain or a loss.  Once the
    buffers overflow *period* the oldest entry is evicted and RSI is
    computed from the remaining *period* entries.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")

    if state.reference is None:
        return SignalOutcome(
            RSIState(gains=(0.0,), losses=(0.0,), reference=price),
            None,
            {"result": "seeded"},
        )

    change = price - state.reference
    gains = state.gains + (max(change, 0.0),)
    losses = state.losses + (abs(min(change, 0.0)),)

    if len(gains) <= period:
        return SignalOutcome(
            RSIState(gains, losses, price),
            None,
            {"result": "warming_up", "samples": len(gains), "required": period + 1},
        )

    gains = gains[-period:]
    losses = losses[-period:]
    rsi = calculate_rsi(gains, losses)
    next_state = RSIState(gains, losses, price)
    insight = {"rsi": rsi}

    if rsi < oversold:
        signal = TradeSignal(
            direction="buy",
            price=price,
            reason=f"RSI {rsi:.1f} below {oversold:.0f} (oversold)",
            indicators={"rsi": rsi},
        )
        return SignalOutcome(next_state, signal, {**insight, "result": "oversold"})

    if rsi > overbought:
        signal = TradeSignal(
            direction="sell",
            price=price,
            reason=f"RSI {rsi:.1f} above {overbought:.0f} (overbought)",
            indicators={"rsi": rsi},
        )
        return SignalOutcome(next_state, signal, {**insight, "result": "overbought"})

    return SignalOutcome(next_state, None, {**insight, "result": "neutral"})
