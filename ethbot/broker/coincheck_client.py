"""Coincheck REST API async client.

Handles all communication with the exchange: ticker, balances, order
placement, open-order listing and cancellation.  Every request is signed.
The client never retries; retry policy belongs to the strategies.
"""

import json
import logging
from typing import Optional

import httpx

from ethbot.broker.models import AccountBalances, OpenOrder, OrderRequest, OrderResponse
from ethbot.broker.signing import NonceSource, generate_signature
from ethbot.config import Config
from ethbot.errors import ExchangeApiError, NetworkError

logger = logging.getLogger("ethbot")


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


class CoincheckClient:
    """Async client wrapping the Coincheck REST API.

    Args:
        config: Application configuration (credentials, base URL, timeout).
        transport: Optional ``httpx`` transport, used by tests to mock HTTP.
        nonce_source: Shared nonce authority.  One per credential pair.
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        nonce_source: Optional[NonceSource] = None,
    ) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._access_key = config.access_key
        self._secret_key = config.secret_key
        self._pair = config.trade_pair
        self._timeout = config.request_timeout_seconds
        self._transport = transport
        self._nonces = nonce_source or NonceSource()

    # ── Signing ──────────────────────────────────────────────────────────

    def nonce(self) -> str:
        """Return the next nonce from the shared source."""
        return self._nonces.next()

    def sign(self, nonce: str, path: str, body: str = "") -> str:
        """Sign ``nonce + base_url + path + body`` with the secret key."""
        return generate_signature(
            self._secret_key, nonce, f"{self._base_url}{path}", body,
        )

    # ── Transport ────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> dict:
        """Send one signed request and return the decoded JSON body.

        Raises ``NetworkError`` on transport failure or timeout and
        ``ExchangeApiError`` on a non-2xx status or ``"success": false``.
        """
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else ""
        nonce = self.nonce()
        url = f"{self._base_url}{path}"
        headers = {
            "ACCESS-KEY": self._access_key,
            "ACCESS-NONCE": nonce,
            "ACCESS-SIGNATURE": self.sign(nonce, path, body),
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout,
            ) as client:
                resp = await client.request(
                    method,
                    url,
                    headers=headers,
                    content=body.encode("utf-8") if body else None,
                )
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} {path} timed out after {self._timeout}s") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {path} transport error: {exc}") from exc

        if not resp.is_success:
            logger.warning(
                "Coincheck %s %s returned %d", method, path, resp.status_code,
            )
            raise ExchangeApiError(resp.status_code, resp.text, path)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ExchangeApiError(resp.status_code, resp.text, path) from exc

        if isinstance(data, dict) and data.get("success") is False:
            raise ExchangeApiError(resp.status_code, resp.text, path)
        return data

    # ── Market data ──────────────────────────────────────────────────────

    async def get_price(self) -> float:
        """Return the last traded price for the pair."""
        data = await self._request("GET", f"/ticker?pair={self._pair}")
        price = float(data["last"])
        logger.debug("Ticker %s last=%.2f", self._pair, price)
        return price

    # ── Account ──────────────────────────────────────────────────────────

    async def get_balances(self) -> AccountBalances:
        """Return yen and ETH balances plus their total value in yen."""
        data = await self._request("GET", "/accounts/balance")
        yen = float(data.get("jpy", 0))
        eth = float(data.get("eth", 0))
        price = await self.get_price()
        return AccountBalances(
            yen=yen,
            eth=eth,
            total_value_in_yen=yen + eth * price,
        )

    # ── Orders ───────────────────────────────────────────────────────────

    async def create_order(self, order: OrderRequest) -> OrderResponse:
        """Place a limit order and return the acknowledgment."""
        data = await self._request("POST", "/exchange/orders", order.to_payload())
        return OrderResponse(
            order_id=int(data["id"]),
            side=data.get("order_type", order.side),
            rate=_optional_float(data.get("rate", order.rate)),
            amount=_optional_float(data.get("amount", order.amount)),
            pair=data.get("pair", order.pair),
            created_at=data.get("created_at", ""),
        )

    async def get_open_orders(self) -> list[OpenOrder]:
        """Return every unfilled order, oldest first as the exchange lists them."""
        data = await self._request("GET", "/exchange/orders/opens")
        orders: list[OpenOrder] = []
        for o in data.get("orders", []):
            orders.append(
                OpenOrder(
                    order_id=int(o["id"]),
                    side=o["order_type"],
                    pending_amount=_optional_float(o.get("pending_amount")),
                    rate=_optional_float(o.get("rate")),
                    created_at=o.get("created_at", ""),
                )
            )
        return orders

    async def cancel_order(self, order_id: int) -> int:
        """Cancel an open order.  Returns the cancelled order id."""
        data = await self._request("DELETE", f"/exchange/orders/{order_id}")
        return int(data.get("id", order_id))
