"""Binance exchange adapter."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import urlencode

from .base import BaseExchangeClient, ProxyConfig, format_number
from .normalization import check_symbol_mismatch, normalize_symbol
from .protocol import DepthLevel, ExchangeBalance, Order, OrderBook, OrderIntent, Scheduler

logger = logging.getLogger(__name__)


class BinanceClient(BaseExchangeClient):
    """Binance spot exchange client."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        runtime: Scheduler | None = None,
        sandbox: bool = False,
        proxy: ProxyConfig | None = None,
        recv_window_ms: int = 5000,
        **options: Any,
    ):
        super().__init__(
            "binance",
            api_key,
            api_secret,
            runtime=runtime,
            sandbox=sandbox,
            proxy=proxy,
            **options,
        )
        self.recv_window_ms = recv_window_ms

    def get_base_url(self) -> str:
        if self.sandbox:
            return "https://testnet.binance.vision"
        return "https://api.binance.com"

    def format_symbol(self, symbol: str) -> str:
        return normalize_symbol(symbol)

    def _get_headers(self) -> dict[str, str]:
        return {
            "X-MBX-APIKEY": self.api_key,
            "User-Agent": "exchmux/1.0",
        }

    def _sign_params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Add timestamp and signature to params.

        The signature covers the query string in the exact order it is sent.
        """
        signed = dict(sorted(params.items()))
        signed["timestamp"] = int(time.time() * 1000)
        signed["recvWindow"] = self.recv_window_ms
        signed["signature"] = self.generate_signature(self.api_secret, urlencode(signed))
        return signed

    async def fetch_depth(self, symbol: str, limit: int = 5) -> OrderBook:
        """Fetch order book depth."""
        symbol = self.format_symbol(symbol)
        data = await self._request_json(
            "GET", "/api/v3/depth", params={"symbol": symbol, "limit": limit}
        )
        return OrderBook(
            symbol=symbol,
            bids=[DepthLevel(float(p), float(q)) for p, q in data.get("bids", [])],
            asks=[DepthLevel(float(p), float(q)) for p, q in data.get("asks", [])],
        )

    async def fetch_balances(self) -> dict[str, ExchangeBalance]:
        """Fetch account balances."""
        data = await self._request_json(
            "GET", "/api/v3/account", params=self._sign_params({}), headers=self._get_headers()
        )

        balances: dict[str, ExchangeBalance] = {}
        for b in data.get("balances", []):
            asset = b["asset"].upper()
            balances[asset] = ExchangeBalance(asset, float(b["free"]), float(b["locked"]))
        return balances

    async def submit_limit_order(self, intent: OrderIntent) -> Order:
        """Place a GTC limit order."""
        symbol = self.format_symbol(intent.symbol)
        params = self._sign_params({
            "symbol": symbol,
            "side": intent.side.value.upper(),
            "type": intent.order_type,
            "timeInForce": intent.time_in_force,
            "quantity": format_number(intent.quantity),
            "price": format_number(intent.price),
        })

        data = await self._request_json(
            "POST", "/api/v3/order", params=params, headers=self._get_headers()
        )
        check_symbol_mismatch(symbol, data.get("symbol", symbol))

        return Order(
            str(data["orderId"]),
            data.get("symbol", symbol),
            data.get("side", intent.side.value).lower(),
            float(data.get("origQty", intent.quantity)),
            float(data.get("price", intent.price)),
            data.get("status", "new").lower(),
        )
