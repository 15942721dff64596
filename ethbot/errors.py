"""Error taxonomy shared by the exchange client and the strategies.

The client raises, never retries.  Strategies decide what to swallow.
"""

from typing import Optional


class EthbotError(Exception):
    """Base class for all bot errors."""


class NetworkError(EthbotError):
    """Transport failure or request timeout talking to the exchange."""


class ExchangeApiError(EthbotError):
    """The exchange answered with a non-success status or ``success: false``."""

    def __init__(self, status_code: int, body: str, path: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.path = path
        super().__init__(f"Exchange error {status_code} on {path or '?'}: {body}")


class InsufficientDataError(EthbotError, ValueError):
    """Not enough samples collected yet.  A no-op signal, not a failure."""


class RecoveryError(EthbotError):
    """One open order could not be cancelled or resubmitted."""

    def __init__(self, order_id, reason: str, cause: Optional[Exception] = None) -> None:
        self.order_id = order_id
        self.reason = reason
        self.cause = cause
        super().__init__(f"Order {order_id}: {reason}")
