"""Base client class for exchange adapters."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Awaitable

import aiohttp

from .errors import ExchangeAPIError, MissingRuntimeError
from .normalization import normalize_asset
from .protocol import ExchangeBalance, Order, OrderBook, OrderIntent, OrderSide, Scheduler

logger = logging.getLogger(__name__)


def format_number(value: float) -> str:
    """Render a float without exponent notation (1e-05 -> '0.00001')."""
    text = f"{value:.10f}".rstrip("0").rstrip(".")
    return text or "0"


class ProxyConfig:
    """HTTP proxy configuration."""

    def __init__(self, url: str | None = None, username: str | None = None, password: str | None = None):
        self.url = url
        self.username = username
        self.password = password

    @property
    def proxy_url(self) -> str | None:
        if not self.url:
            return None
        if self.username and self.password:
            protocol = self.url.split("://")[0] if "://" in self.url else "http"
            rest = self.url.split("://")[1] if "://" in self.url else self.url
            return f"{protocol}://{self.username}:{self.password}@{rest}"
        return self.url


class BaseExchangeClient(ABC):
    """Base class for all exchange adapters.

    Subclasses implement the async wire calls (``fetch_depth``,
    ``fetch_balances``, ``submit_limit_order``) and ``format_symbol``. This
    class turns them into the synchronous ``ExchangeClient`` contract:
    read paths wait for the answer, orders are handed to the shared runtime
    and return immediately.
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        api_secret: str,
        *,
        runtime: Scheduler | None = None,
        sandbox: bool = False,
        proxy: ProxyConfig | None = None,
        timeout: float = 10.0,
        **options: Any,
    ):
        """Initialize exchange client.

        Args:
            name: Exchange name
            api_key: API key
            api_secret: API secret
            runtime: Shared scheduler for order submission (can be attached later)
            sandbox: Use sandbox/testnet environment
            proxy: Proxy configuration
            timeout: Per-request HTTP timeout in seconds
            **options: Additional exchange-specific options
        """
        self.name = name
        self.api_key = api_key
        self.api_secret = api_secret
        self.runtime = runtime
        self.sandbox = sandbox
        self.proxy = proxy or ProxyConfig()
        self.timeout = timeout
        self.options = options

    def set_runtime(self, runtime: Scheduler) -> None:
        self.runtime = runtime

    def has_runtime(self) -> bool:
        return self.runtime is not None

    @staticmethod
    def generate_signature(secret: str, message: str, method: str = "hmac-sha256") -> str:
        """Generate HMAC-SHA256 signature.

        Args:
            secret: Secret key
            message: Message to sign
            method: Signature method (default: hmac-sha256)

        Returns:
            Hex-encoded signature
        """
        if method == "hmac-sha256":
            return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
        else:
            raise ValueError(f"Unsupported signature method: {method}")

    def get_base_url(self) -> str:
        """Get base API URL.

        Can be overridden by subclasses to handle sandbox/testnet URLs.
        """
        return "https://api.example.com"

    @abstractmethod
    def format_symbol(self, symbol: str) -> str:
        """Convert a symbol to the form this exchange expects on the wire."""
        ...

    def format_asset(self, asset: str) -> str:
        return normalize_asset(asset)

    # -- async wire calls ---------------------------------------------------

    @abstractmethod
    async def fetch_depth(self, symbol: str, limit: int = 5) -> OrderBook:
        """Fetch the top of the order book."""
        ...

    @abstractmethod
    async def fetch_balances(self) -> dict[str, ExchangeBalance]:
        """Fetch all account balances keyed by asset."""
        ...

    async def fetch_balance(self, asset: str) -> ExchangeBalance | None:
        """Fetch the balance of one asset.

        Default implementation filters the full account snapshot.
        """
        balances = await self.fetch_balances()
        return balances.get(self.format_asset(asset))

    @abstractmethod
    async def submit_limit_order(self, intent: OrderIntent) -> Order:
        """Send a GTC limit order to the exchange."""
        ...

    # -- ExchangeClient contract -------------------------------------------

    def symbol_exists(self, symbol: str) -> bool:
        self._check_can_block("symbol_exists")
        try:
            self._block_on(self.fetch_depth(symbol, limit=1))
        except Exception as e:
            logger.debug("%s: symbol %s not available: %s", self.name, symbol, e)
            return False
        return True

    def get_balance(self, asset: str) -> ExchangeBalance | None:
        self._check_can_block("get_balance")
        asset = self.format_asset(asset)
        try:
            balance = self._block_on(self.fetch_balance(asset))
        except Exception as e:
            logger.warning("%s: failed to fetch balance for %s: %s", self.name, asset, e)
            return None

        logger.info("%s: fetched balance for %s: %s", self.name, asset, balance)
        return balance

    def get_balances(self) -> dict[str, ExchangeBalance]:
        self._check_can_block("get_balances")
        return self._block_on(self.fetch_balances())

    def buy_order(self, symbol: str, qty: float, price: float) -> Future:
        """Send a GTC limit buy order through the shared runtime."""
        return self._place_order(OrderSide.BUY, symbol, qty, price)

    def sell_order(self, symbol: str, qty: float, price: float) -> Future:
        """Send a GTC limit sell order through the shared runtime."""
        return self._place_order(OrderSide.SELL, symbol, qty, price)

    # -- internals ----------------------------------------------------------

    def _place_order(self, side: OrderSide, symbol: str, qty: float, price: float) -> Future:
        if self.runtime is None:
            logger.critical(
                "No runtime set for %s, cannot execute %s order", self.name, side.value
            )
            raise MissingRuntimeError(
                f"No runtime set for {type(self).__name__}, cannot execute {side.value} order"
            )

        intent = OrderIntent(symbol=symbol, side=side, quantity=float(qty), price=float(price))
        return self.runtime.spawn(self._execute_order(intent))

    async def _execute_order(self, intent: OrderIntent) -> Order | None:
        symbol = self.format_symbol(intent.symbol)
        logger.info(
            "calling %s order on %s symbol: %s; qty: %s; price: %s",
            intent.side.value.capitalize(), self.name, symbol, intent.quantity, intent.price,
        )

        try:
            order = await self.submit_limit_order(intent)
        except Exception as e:
            logger.error(
                "Error placing %s order on %s [sym: %s, qty: %s, price: %s]: %s",
                intent.side.value, self.name, symbol, intent.quantity, intent.price, e,
            )
            return None

        logger.info(
            "Trade [sym: %s, qty: %s, price: %s] successful, order: %r",
            symbol, intent.quantity, intent.price, order,
        )
        return order

    def _check_can_block(self, operation: str) -> None:
        """Refuse a sync read from inside an event loop when no runtime is attached.

        Without a runtime the read would need a private loop, which cannot be
        started from a thread that already runs one.

        Raises:
            MissingRuntimeError: If called from async code with no runtime set
        """
        if self.runtime is not None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return

        logger.critical("No runtime set for %s, cannot call %s from async code", self.name, operation)
        raise MissingRuntimeError(
            f"Attach a runtime to {type(self).__name__} to call {operation}() from async code"
        )

    def _block_on(self, coro: Awaitable[Any]) -> Any:
        if self.runtime is not None:
            return self.runtime.block_on(coro)
        return asyncio.run(coro)

    def _new_session(self) -> aiohttp.ClientSession:
        # One session per call: the runtime and asyncio.run() use different loops.
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | str | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform an HTTP request and decode the JSON body.

        Raises:
            ExchangeAPIError: If the response status is not 200
        """
        url = f"{self.get_base_url()}{path}"
        async with self._new_session() as session:
            async with session.request(
                method,
                url,
                params=params,
                data=data,
                json=json,
                headers=headers,
                proxy=self.proxy.proxy_url,
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise ExchangeAPIError(self.name, f"{method} {path} failed: {body[:200]}", resp.status)
                return await resp.json(content_type=None)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, sandbox={self.sandbox}, runtime={self.has_runtime()})"
