"""Position sizing — balance-aware order amounts.

The ``calculate_*`` functions are pure math.  ``PositionSizer`` fetches a
fresh balance snapshot for every call; balances change after every fill,
so nothing is cached.
"""

import math

from ethbot.broker.models import MIN_ORDER_AMOUNT, AccountBalances

AMOUNT_DECIMALS = 4


def clamp_amount(amount: float) -> float:
    """Raise *amount* to the exchange minimum when it falls below it."""
    return max(amount, MIN_ORDER_AMOUNT)


def calculate_buy_amount(
    balances: AccountBalances,
    risk_pct: float,
    price: float,
) -> float:
    """Calculate how much ETH to buy.

    Formula::

        risk_yen = min(yen_balance, total_value_in_yen × risk_pct / 100)
        amount   = floor(risk_yen / price × 10⁴) / 10⁴

    The result is clamped to ``MIN_ORDER_AMOUNT``.

    Raises:
        ValueError: If *risk_pct* or *price* is non-positive.
    """
    if risk_pct <= 0:
        raise ValueError(f"risk_pct must be positive, got {risk_pct}")
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")

    risk_yen = min(balances.yen, balances.total_value_in_yen * risk_pct / 100.0)
    scale = 10 ** AMOUNT_DECIMALS
    amount = math.floor(risk_yen / price * scale) / scale
    return clamp_amount(amount)


def calculate_sell_amount(balances: AccountBalances) -> float:
    """Sell the whole ETH balance, clamped to ``MIN_ORDER_AMOUNT``."""
    return clamp_amount(balances.eth)


class PositionSizer:
    """Sizes orders from live balances.

    Args:
        risk_pct: Share of total account value risked per buy (e.g. 5.0).
    """

    def __init__(self, risk_pct: float) -> None:
        if risk_pct <= 0:
            raise ValueError(f"risk_pct must be positive, got {risk_pct}")
        self.risk_pct = risk_pct

    async def buy_amount(self, broker, price: float) -> float:
        balances = await broker.get_balances()
        return calculate_buy_amount(balances, self.risk_pct, price)

    async def sell_amount(self, broker) -> float:
        balances = await broker.get_balances()
        return calculate_sell_amount(balances)
