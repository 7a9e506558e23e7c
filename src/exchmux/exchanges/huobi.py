"""Huobi (HTX) exchange adapter."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from .base import BaseExchangeClient, ProxyConfig, format_number
from .errors import ExchangeAPIError
from .normalization import normalize_symbol
from .protocol import DepthLevel, ExchangeBalance, Order, OrderBook, OrderIntent, Scheduler

logger = logging.getLogger(__name__)

DEPTH_SIZES = (5, 10, 20)


class HuobiClient(BaseExchangeClient):
    """Huobi (HTX) spot exchange client."""

    host = "api.huobi.pro"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        runtime: Scheduler | None = None,
        sandbox: bool = False,
        proxy: ProxyConfig | None = None,
        account_id: str | int | None = None,
        **options: Any,
    ):
        super().__init__(
            "huobi",
            api_key,
            api_secret,
            runtime=runtime,
            sandbox=sandbox,
            proxy=proxy,
            **options,
        )
        self.account_id = str(account_id) if account_id is not None else None

    def get_base_url(self) -> str:
        return f"https://{self.host}"

    def format_symbol(self, symbol: str) -> str:
        return normalize_symbol(symbol, "lower")

    def _signed_params(self, method: str, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build query params carrying the v2 signature."""
        signed = {
            "AccessKeyId": self.api_key,
            "SignatureMethod": "HmacSHA256",
            "SignatureVersion": "2",
            "Timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
            **(params or {}),
        }
        signed = dict(sorted(signed.items()))
        payload = "\n".join([method, self.host, path, urlencode(signed)])
        signed["Signature"] = base64.b64encode(
            hmac.new(
                self.api_secret.encode(),
                payload.encode(),
                hashlib.sha256,
            ).digest()
        ).decode()
        return signed

    def _unwrap(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("status") != "ok":
            message = data.get("err-msg") or data.get("err-code") or "unknown error"
            raise ExchangeAPIError(self.name, f"{path}: {message}")
        return data

    async def _ensure_account_id(self) -> str:
        if self.account_id:
            return self.account_id

        path = "/v1/account/accounts"
        data = self._unwrap(
            path,
            await self._request_json("GET", path, params=self._signed_params("GET", path)),
        )
        accounts = data.get("data", [])
        spot = next((a for a in accounts if a.get("type") == "spot"), None)
        if spot is None:
            raise ExchangeAPIError(self.name, "no spot account found")

        self.account_id = str(spot["id"])
        return self.account_id

    async def fetch_depth(self, symbol: str, limit: int = 5) -> OrderBook:
        """Fetch order book depth."""
        symbol = self.format_symbol(symbol)
        depth = next((size for size in DEPTH_SIZES if size >= limit), DEPTH_SIZES[-1])
        path = "/market/depth"
        data = self._unwrap(
            path,
            await self._request_json(
                "GET", path, params={"symbol": symbol, "type": "step0", "depth": depth}
            ),
        )

        tick = data.get("tick", {})
        return OrderBook(
            symbol=symbol,
            bids=[DepthLevel(float(p), float(q)) for p, q in tick.get("bids", [])[:limit]],
            asks=[DepthLevel(float(p), float(q)) for p, q in tick.get("asks", [])[:limit]],
        )

    async def fetch_balances(self) -> dict[str, ExchangeBalance]:
        """Fetch account balances."""
        account_id = await self._ensure_account_id()
        path = f"/v1/account/accounts/{account_id}/balance"
        data = self._unwrap(
            path,
            await self._request_json("GET", path, params=self._signed_params("GET", path)),
        )

        balances: dict[str, ExchangeBalance] = {}
        for item in data.get("data", {}).get("list", []):
            asset = item.get("currency", "").upper()
            amount = float(item.get("balance", 0))
            balance_type = item.get("type")

            if balance_type == "trade":
                balance = ExchangeBalance(asset, amount, 0.0)
            elif balance_type == "frozen":
                balance = ExchangeBalance(asset, 0.0, amount)
            else:
                continue

            if asset in balances:
                balance = balances[asset] + balance
            balances[asset] = balance

        return balances

    async def submit_limit_order(self, intent: OrderIntent) -> Order:
        """Place a limit order. Huobi limit orders are GTC by default."""
        account_id = await self._ensure_account_id()
        symbol = self.format_symbol(intent.symbol)
        path = "/v1/order/orders/place"
        body = {
            "account-id": account_id,
            "symbol": symbol,
            "type": f"{intent.side.value}-{intent.order_type.lower()}",
            "amount": format_number(intent.quantity),
            "price": format_number(intent.price),
        }

        data = self._unwrap(
            path,
            await self._request_json(
                "POST", path, params=self._signed_params("POST", path), json=body
            ),
        )

        return Order(
            str(data.get("data")),
            symbol,
            intent.side.value,
            intent.quantity,
            intent.price,
            "submitted",
        )
