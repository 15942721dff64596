"""Technical indicators — SMA and RSI.  Pure functions, no I/O."""

from typing import Sequence

from ethbot.errors import InsufficientDataError


def calculate_sma(prices: Sequence[float], period: int) -> float:
    """Simple moving average of the last *period* prices.

    Raises ``InsufficientDataError`` if fewer than *period* prices are given.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period:
        raise InsufficientDataError(
            f"Need at least {period} prices for SMA({period}), got {len(prices)}"
        )
    recent = prices[-period:]
    return sum(recent) / period


def rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    """Map average gain/loss to the 0–100 RSI scale.

    ``avg_loss == 0`` is handled explicitly instead of through float
    infinity: RSI is 100 when there were gains, 50 when the market was flat.
    """
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi(gains: Sequence[float], losses: Sequence[float]) -> float:
    """Cutler's RSI: simple means over equal-length gain and loss buffers.

        avg_gain = mean(gains)
        avg_loss = mean(losses)
        RSI      = 100 - 100 / (1 + avg_gain / avg_loss)
    """
    if len(gains) != len(losses):
        raise ValueError(
            f"gains and losses must be the same length, got {len(gains)} / {len(losses)}"
        )
    if not gains:
        raise InsufficientDataError("Need at least one gain/loss pair for RSI")
    avg_gain = sum(gains) / len(gains)
    avg_loss = sum(losses) / len(losses)
    return rsi_from_averages(avg_gain, avg_loss)
