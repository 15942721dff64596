"""Broker data models — typed representations of Coincheck API objects."""

from dataclasses import dataclass
from typing import Optional


MIN_ORDER_AMOUNT = 0.01  # exchange rejects smaller ETH amounts
ORDER_SIDES = ("buy", "sell")


@dataclass(frozen=True)
class AccountBalances:
    """Snapshot of the account, fetched fresh for every decision."""

    yen: float
    eth: float
    total_value_in_yen: float


@dataclass(frozen=True)
class OrderRequest:
    """A limit order request payload."""

    rate: float
    amount: float
    side: str  # "buy" or "sell"
    pair: str = "eth_jpy"

    def __post_init__(self) -> None:
        if self.side not in ORDER_SIDES:
            raise ValueError(f"side must be 'buy' or 'sell', got {self.side!r}")
        if self.amount < MIN_ORDER_AMOUNT:
            raise ValueError(
                f"amount must be at least {MIN_ORDER_AMOUNT}, got {self.amount}"
            )
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")

    def to_payload(self) -> dict:
        """Return the JSON body expected by ``POST /exchange/orders``."""
        return {
            "rate": self.rate,
            "amount": self.amount,
            "order_type": self.side,
            "pair": self.pair,
        }


@dataclass(frozen=True)
class OrderResponse:
    """Acknowledgment returned after an order is accepted."""

    order_id: int
    side: str
    rate: Optional[float]
    amount: Optional[float]
    pair: str
    created_at: str


@dataclass(frozen=True)
class OpenOrder:
    """An unfilled order as reported by the exchange."""

    order_id: int
    side: str
    pending_amount: Optional[float]
    rate: Optional[float]
    created_at: str
