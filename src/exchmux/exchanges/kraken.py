"""Kraken exchange adapter."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from typing import Any
from urllib.parse import urlencode

from .base import BaseExchangeClient, ProxyConfig, format_number
from .errors import ExchangeAPIError
from .normalization import normalize_symbol
from .protocol import DepthLevel, ExchangeBalance, Order, OrderBook, OrderIntent, OrderSide, Scheduler

logger = logging.getLogger(__name__)

# Kraken's legacy asset codes
ASSET_ALIASES = {
    "XXBT": "BTC",
    "XBT": "BTC",
    "XXDG": "DOGE",
    "XDG": "DOGE",
    "XETH": "ETH",
    "XETC": "ETC",
    "XLTC": "LTC",
    "XMLN": "MLN",
    "XREP": "REP",
    "XXLM": "XLM",
    "XXMR": "XMR",
    "XXRP": "XRP",
    "XZEC": "ZEC",
    "ZUSD": "USD",
    "ZEUR": "EUR",
    "ZGBP": "GBP",
    "ZCAD": "CAD",
    "ZJPY": "JPY",
    "ZAUD": "AUD",
}

# fciq: fee in quote currency, fcib: fee in base currency
ORDER_FLAGS = {OrderSide.BUY: "fciq", OrderSide.SELL: "fcib"}


def normalize_kraken_asset(asset: str) -> str:
    """Map Kraken asset codes to common ones (XXBT -> BTC, ZUSD -> USD)."""
    asset = asset.strip().upper()
    return ASSET_ALIASES.get(asset, asset)


class KrakenClient(BaseExchangeClient):
    """Kraken spot exchange client."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        runtime: Scheduler | None = None,
        sandbox: bool = False,
        proxy: ProxyConfig | None = None,
        **options: Any,
    ):
        super().__init__(
            "kraken",
            api_key,
            api_secret,
            runtime=runtime,
            sandbox=sandbox,
            proxy=proxy,
            **options,
        )

    def get_base_url(self) -> str:
        return "https://api.kraken.com"

    def format_symbol(self, symbol: str) -> str:
        return normalize_symbol(symbol)

    def _get_signature(self, path: str, nonce: str, postdata: str) -> str:
        """Generate Kraken API-Sign header value."""
        message = path.encode() + hashlib.sha256((nonce + postdata).encode()).digest()
        signature = hmac.new(base64.b64decode(self.api_secret), message, hashlib.sha512)
        return base64.b64encode(signature.digest()).decode()

    async def _private(self, path: str, params: dict[str, Any] | None = None) -> Any:
        nonce = str(int(time.time() * 1000))
        body = {"nonce": nonce, **(params or {})}
        postdata = urlencode(body)
        headers = {
            "API-Key": self.api_key,
            "API-Sign": self._get_signature(path, nonce, postdata),
            "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
        }
        data = await self._request_json("POST", path, data=postdata, headers=headers)
        return self._unwrap(path, data)

    def _unwrap(self, path: str, data: dict[str, Any]) -> Any:
        errors = data.get("error") or []
        if errors:
            raise ExchangeAPIError(self.name, f"{path}: {', '.join(errors)}")
        return data.get("result", {})

    async def fetch_depth(self, symbol: str, limit: int = 5) -> OrderBook:
        """Fetch order book depth."""
        symbol = self.format_symbol(symbol)
        path = "/0/public/Depth"
        data = await self._request_json("GET", path, params={"pair": symbol, "count": limit})
        result = self._unwrap(path, data)
        if not result:
            raise ExchangeAPIError(self.name, f"no order book for {symbol}")

        # Kraken keys the book by its own pair name (XBTUSD -> XXBTZUSD)
        book = next(iter(result.values()))
        return OrderBook(
            symbol=symbol,
            bids=[DepthLevel(float(level[0]), float(level[1])) for level in book.get("bids", [])],
            asks=[DepthLevel(float(level[0]), float(level[1])) for level in book.get("asks", [])],
        )

    async def fetch_balances(self) -> dict[str, ExchangeBalance]:
        """Fetch account balances including amounts held by open orders."""
        result = await self._private("/0/private/BalanceEx")

        balances: dict[str, ExchangeBalance] = {}
        for raw_asset, entry in result.items():
            asset = normalize_kraken_asset(raw_asset)
            total = float(entry.get("balance", 0))
            held = float(entry.get("hold_trade", 0))
            balance = ExchangeBalance(asset, total - held, held)
            if asset in balances:
                balance = balances[asset] + balance
            balances[asset] = balance
        return balances

    async def submit_limit_order(self, intent: OrderIntent) -> Order:
        """Place a GTC limit order."""
        symbol = self.format_symbol(intent.symbol)
        result = await self._private("/0/private/AddOrder", {
            "ordertype": intent.order_type.lower(),
            "type": intent.side.value,
            "volume": format_number(intent.quantity),
            "pair": symbol,
            "price": format_number(intent.price),
            "timeinforce": intent.time_in_force,
            "oflags": ORDER_FLAGS[intent.side],
        })

        txids = result.get("txid") or [""]
        return Order(
            txids[0],
            symbol,
            intent.side.value,
            intent.quantity,
            intent.price,
            "submitted",
        )
