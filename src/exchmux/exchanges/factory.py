"""Factory for creating exchange client instances."""

from __future__ import annotations

from typing import Any, Type

from .base import BaseExchangeClient, ProxyConfig
from .binance import BinanceClient
from .huobi import HuobiClient
from .kraken import KrakenClient
from .protocol import Scheduler


EXCHANGE_CLIENTS: dict[str, Type[BaseExchangeClient]] = {
    "binance": BinanceClient,
    "kraken": KrakenClient,
    "huobi": HuobiClient,
    "htx": HuobiClient,
}


def create_exchange_client(
    exchange: str,
    api_key: str,
    api_secret: str,
    *,
    runtime: Scheduler | None = None,
    sandbox: bool = False,
    proxy: dict[str, Any] | None = None,
    **options: Any,
) -> BaseExchangeClient:
    """Create an exchange client instance.

    Args:
        exchange: Exchange name (binance, kraken, huobi)
        api_key: API key
        api_secret: API secret
        runtime: Shared scheduler for order submission (optional, can be set later)
        sandbox: Use sandbox/testnet environment
        proxy: Proxy configuration (url, username, password)
        **options: Additional exchange-specific options

    Returns:
        Configured exchange client

    Raises:
        ValueError: If exchange is not supported
    """
    exchange_lower = exchange.lower()

    if exchange_lower not in EXCHANGE_CLIENTS:
        supported = ", ".join(EXCHANGE_CLIENTS.keys())
        raise ValueError(
            f"Unsupported exchange: {exchange}. Supported exchanges: {supported}"
        )

    client_class = EXCHANGE_CLIENTS[exchange_lower]

    proxy_config = None
    if proxy:
        proxy_config = ProxyConfig(
            url=proxy.get("url"),
            username=proxy.get("username"),
            password=proxy.get("password"),
        )

    kwargs: dict[str, Any] = {
        "api_key": api_key,
        "api_secret": api_secret,
        "runtime": runtime,
        "sandbox": sandbox,
        "proxy": proxy_config,
    }
    kwargs.update(options)

    return client_class(**kwargs)
