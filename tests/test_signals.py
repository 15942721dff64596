"""Tests for the price window, indicators, and the pure detector logic.

Covers time/count eviction, breakout ranges, latched MA crosses, and RSI
boundaries.  No broker involved.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ethbot.errors import InsufficientDataError
from ethbot.strategy.indicators import calculate_rsi, calculate_sma, rsi_from_averages
from ethbot.strategy.models import CrossState, PriceSample
from ethbot.strategy.signals import (
    BreakoutState,
    CrossoverState,
    RSIState,
    evaluate_breakout,
    evaluate_crossover,
    evaluate_rsi,
)
from ethbot.strategy.window import PriceWindow


T0 = datetime(2025, 1, 10, 0, 0, tzinfo=timezone.utc)


def _sample(price: float, minutes: int = 0) -> PriceSample:
    return PriceSample(price=price, timestamp=T0 + timedelta(minutes=minutes))


def _feed_breakout(prices, start_minute=0, state=None):
    state = state or BreakoutState()
    outcomes = []
    for i, price in enumerate(prices):
        outcome = evaluate_breakout(state, _sample(price, start_minute + i * 5))
        state = outcome.state
        outcomes.append(outcome)
    return state, outcomes


def _feed_crossover(prices, short_term=2, long_term=4, state=None):
    state = state or CrossoverState.initial(long_term)
    outcomes = []
    for i, price in enumerate(prices):
        outcome = evaluate_crossover(state, _sample(price, i * 5), short_term, long_term)
        state = outcome.state
        outcomes.append(outcome)
    return state, outcomes


def _feed_rsi(prices, period=14, state=None):
    state = state or RSIState()
    outcomes = []
    for price in prices:
        outcome = evaluate_rsi(state, price, period)
        state = outcome.state
        outcomes.append(outcome)
    return state, outcomes


# ── PriceWindow ──────────────────────────────────────────────────────────


class TestPriceWindow:
    def test_count_bound_evicts_oldest(self):
        window = PriceWindow.count_bounded(3).extend(
            [_sample(p, i) for i, p in enumerate([1.0, 2.0, 3.0, 4.0, 5.0])]
        )
        assert window.prices == [3.0, 4.0, 5.0]

    def test_time_bound_evicts_older_than_max_age(self):
        window = PriceWindow.time_bounded(timedelta(hours=24))
        window = window.push(_sample(100.0, 0))
        window = window.push(_sample(101.0, 60))
        window = window.push(_sample(102.0, 24 * 60 + 30))
        assert window.prices == [101.0, 102.0]

    def test_push_returns_new_window(self):
        empty = PriceWindow.count_bounded(2)
        one = empty.push(_sample(1.0))
        assert len(empty) == 0
        assert len(one) == 1

    def test_rejects_out_of_order_samples(self):
        window = PriceWindow.count_bounded(5).push(_sample(1.0, 10))
        with pytest.raises(ValueError, match="older"):
            window.push(_sample(2.0, 5))

    def test_stamp_clamps_to_newest_sample(self):
        window = PriceWindow.count_bounded(5).push(_sample(1.0, 10))
        assert window.stamp(T0) == T0 + timedelta(minutes=10)
        assert window.stamp(T0 + timedelta(minutes=20)) == T0 + timedelta(minutes=20)
        assert PriceWindow.count_bounded(5).stamp(T0) == T0

    def test_statistics(self):
        window = PriceWindow.count_bounded(5).extend(
            [_sample(p, i) for i, p in enumerate([4.0, 1.0, 3.0, 2.0])]
        )
        assert window.high() == 4.0
        assert window.low() == 1.0
        assert window.mean() == pytest.approx(2.5)
        assert window.mean(2) == pytest.approx(2.5)
        assert window.mean(3) == pytest.approx(2.0)

    def test_empty_window_statistics_raise(self):
        with pytest.raises(InsufficientDataError):
            PriceWindow.count_bounded(3).high()

    def test_mean_requires_enough_samples(self):
        window = PriceWindow.count_bounded(5).push(_sample(1.0))
        with pytest.raises(InsufficientDataError):
            window.mean(2)

    def test_cleared_keeps_bounds(self):
        window = PriceWindow.count_bounded(3).push(_sample(1.0)).cleared()
        assert len(window) == 0
        assert window.max_len == 3


# ── Indicators ───────────────────────────────────────────────────────────


class TestIndicators:
    def test_sma(self):
        assert calculate_sma([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx(3.5)

    def test_sma_insufficient(self):
        with pytest.raises(InsufficientDataError):
            calculate_sma([1.0], 2)

    def test_rsi_zero_loss_is_100(self):
        assert rsi_from_averages(1.0, 0.0) == 100.0

    def test_rsi_flat_is_neutral(self):
        assert rsi_from_averages(0.0, 0.0) == 50.0

    def test_rsi_zero_gain_is_0(self):
        assert rsi_from_averages(0.0, 2.0) == pytest.approx(0.0)

    def test_rsi_formula(self):
        gains = [2.0, 0.0, 3.0]
        losses = [0.0, 1.0, 0.0]
        avg_gain, avg_loss = 5.0 / 3, 1.0 / 3
        expected = 100 - 100 / (1 + avg_gain / avg_loss)
        assert calculate_rsi(gains, losses) == pytest.approx(expected)

    def test_rsi_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            calculate_rsi([1.0], [1.0, 2.0])


# ── Breakout ─────────────────────────────────────────────────────────────


class TestBreakout:
    def test_first_sample_starts_range(self):
        state, outcomes = _feed_breakout([100.0])
        assert outcomes[0].signal is None
        assert outcomes[0].insight["result"] == "range_started"
        assert len(state.window) == 1

    def test_spike_above_high_buys_once_and_resets(self):
        state, outcomes = _feed_breakout([100.0, 100.0, 100.0, 100.0, 102.0])
        signals = [o.signal for o in outcomes if o.signal is not None]
        assert len(signals) == 1
        assert signals[0].direction == "buy"
        assert signals[0].price == 102.0
        assert signals[0].indicators["high"] == 100.0
        assert len(state.window) == 0

    def test_repeat_spike_after_reset_fires_again(self):
        state, first = _feed_breakout([100.0, 100.0, 102.0])
        state, second = _feed_breakout([100.0, 100.0, 102.0], start_minute=60, state=state)
        buys = [o for o in first + second if o.signal and o.signal.direction == "buy"]
        assert len(buys) == 2
        # The tick right after a reset only seeds the new range
        assert second[0].insight["result"] == "range_started"

    def test_drop_below_low_sells(self):
        state, outcomes = _feed_breakout([100.0, 100.5, 100.0, 98.0])
        assert outcomes[-1].signal is not None
        assert outcomes[-1].signal.direction == "sell"
        assert len(state.window) == 0

    def test_move_within_one_percent_holds(self):
        state, outcomes = _feed_breakout([100.0, 100.9, 99.1, 100.99])
        assert all(o.signal is None for o in outcomes)
        assert outcomes[-1].insight["result"] == "in_range"
        assert len(state.window) == 4

    def test_samples_older_than_24h_are_evicted(self):
        state = BreakoutState()
        state = evaluate_breakout(state, _sample(200.0, 0)).state
        # 25 hours later the 200 high no longer counts
        later = 25 * 60
        state = evaluate_breakout(state, _sample(100.0, later)).state
        state = evaluate_breakout(state, _sample(100.0, later + 5)).state
        outcome = evaluate_breakout(state, _sample(102.0, later + 10))
        assert outcome.signal is not None
        assert outcome.signal.direction == "buy"
        assert outcome.insight["high"] == 100.0

    def test_old_high_still_counts_within_24h(self):
        state = BreakoutState()
        state = evaluate_breakout(state, _sample(101.0, 0)).state
        state = evaluate_breakout(state, _sample(100.0, 60)).state
        # 23 hours after the 101 high, 101.5 is still inside the range
        outcome = evaluate_breakout(state, _sample(101.5, 23 * 60))
        assert outcome.signal is None
        assert outcome.insight["high"] == 101.0


# ── Moving-average cross ─────────────────────────────────────────────────


class TestCrossover:
    def test_warm_up_needs_long_term_plus_one(self):
        state, outcomes = _feed_crossover([100.0, 101.0, 102.0, 103.0])
        assert all(o.signal is None for o in outcomes)
        assert outcomes[-1].insight["result"] == "warming_up"
        assert state.ticks == 4

    def test_window_never_exceeds_long_term(self):
        state, _ = _feed_crossover([float(p) for p in range(100, 110)])
        assert len(state.window) == 4

    def test_rising_sequence_buys_exactly_once(self):
        prices = [300000.0 + 1000 * i for i in range(10)]
        state, outcomes = _feed_crossover(prices)
        buys = [o.signal for o in outcomes if o.signal is not None]
        assert len(buys) == 1
        assert buys[0].direction == "buy"
        assert buys[0].price == 304000.0
        assert buys[0].indicators["short_ma"] == pytest.approx(303500.0)
        assert buys[0].indicators["long_ma"] == pytest.approx(302500.0)
        assert state.cross == CrossState.GOLDEN

    def test_dead_cross_resets_latch(self):
        prices = [100.0, 101.0, 102.0, 103.0, 104.0, 105.0, 104.0, 103.0, 104.0, 106.0]
        _, outcomes = _feed_crossover(prices)
        directions = [o.signal.direction for o in outcomes if o.signal is not None]
        assert directions == ["buy", "sell", "buy"]

    def test_repeated_dead_condition_sells_once(self):
        prices = [110.0, 109.0, 108.0, 107.0, 106.0, 105.0, 104.0, 103.0]
        state, outcomes = _feed_crossover(prices)
        sells = [o for o in outcomes if o.signal is not None]
        assert len(sells) == 1
        assert sells[0].signal.direction == "sell"
        assert state.cross == CrossState.DEAD

    def test_equal_averages_are_no_signal(self):
        state, outcomes = _feed_crossover([100.0] * 8)
        assert all(o.signal is None for o in outcomes)
        assert outcomes[-1].insight["result"] == "no_cross"
        assert state.cross == CrossState.NONE

    def test_price_below_short_ma_blocks_golden(self):
        # short > long but the last price dips under the short MA
        prices = [100.0, 100.0, 100.0, 110.0, 109.0]
        _, outcomes = _feed_crossover(prices)
        assert outcomes[-1].signal is None

    def test_rejects_inverted_periods(self):
        with pytest.raises(ValueError):
            evaluate_crossover(CrossoverState.initial(4), _sample(1.0), 4, 4)


# ── RSI ──────────────────────────────────────────────────────────────────


class TestRSI:
    def test_first_tick_only_seeds(self):
        state, outcomes = _feed_rsi([100.0])
        assert outcomes[0].signal is None
        assert state.gains == (0.0,)
        assert state.losses == (0.0,)
        assert state.reference == 100.0

    def test_change_is_measured_against_previous_price(self):
        state, _ = _feed_rsi([100.0, 110.0, 105.0])
        assert state.gains == (0.0, 10.0, 0.0)
        assert state.losses == (0.0, 0.0, 5.0)
        assert state.reference == 105.0

    def test_no_decision_until_period_exceeded(self):
        state, outcomes = _feed_rsi([100.0 + i for i in range(14)])
        assert all("rsi" not in o.insight for o in outcomes)
        assert len(state.gains) == 14

    def test_buffers_capped_at_period(self):
        state, _ = _feed_rsi([100.0 + i for i in range(30)])
        assert len(state.gains) == 14
        assert len(state.losses) == 14

    def test_constant_gains_give_100_and_sell(self):
        _, outcomes = _feed_rsi([100.0 + i for i in range(15)])
        last = outcomes[-1]
        assert last.insight["rsi"] == 100.0
        assert last.signal is not None
        assert last.signal.direction == "sell"

    def test_constant_losses_give_0_and_buy(self):
        _, outcomes = _feed_rsi([200.0 - i for i in range(15)])
        last = outcomes[-1]
        assert last.insight["rsi"] == pytest.approx(0.0)
        assert last.signal.direction == "buy"

    def test_flat_market_is_neutral(self):
        _, outcomes = _feed_rsi([100.0] * 16)
        assert outcomes[-1].insight["rsi"] == 50.0
        assert outcomes[-1].signal is None

    def test_known_sequence_matches_formula(self):
        changes = [2, -1, 3, -2, 1, -1, 2, -3, 1, 2, -1, 1, -2, 3]
        prices = [1000.0]
        for c in changes:
            prices.append(prices[-1] + c)
        _, outcomes = _feed_rsi(prices)

        avg_gain = sum(c for c in changes if c > 0) / 14
        avg_loss = sum(-c for c in changes if c < 0) / 14
        expected = 100 - 100 / (1 + avg_gain / avg_loss)
        assert outcomes[-1].insight["rsi"] == pytest.approx(expected)
        assert outcomes[-1].insight["rsi"] == pytest.approx(60.0)
        assert outcomes[-1].signal is None
