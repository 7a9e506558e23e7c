"""Exchange adapters and routing layer."""

from .protocol import ExchangeClient, ExchangeBalance, Order, OrderBook, OrderIntent, OrderSide, Scheduler
from .errors import (
    DuplicateSymbolError,
    ExchangeAPIError,
    ExchangeError,
    MissingRuntimeError,
    SymbolNotRoutedError,
)
from .normalization import normalize_symbol, normalize_asset, check_symbol_mismatch
from .factory import create_exchange_client, EXCHANGE_CLIENTS
from .base import BaseExchangeClient, ProxyConfig
from .combined import AggregatedBalances, CombinedClient

__all__ = [
    "ExchangeClient",
    "ExchangeBalance",
    "Order",
    "OrderBook",
    "OrderIntent",
    "OrderSide",
    "Scheduler",
    "DuplicateSymbolError",
    "ExchangeAPIError",
    "ExchangeError",
    "MissingRuntimeError",
    "SymbolNotRoutedError",
    "normalize_symbol",
    "normalize_asset",
    "check_symbol_mismatch",
    "create_exchange_client",
    "EXCHANGE_CLIENTS",
    "BaseExchangeClient",
    "ProxyConfig",
    "AggregatedBalances",
    "CombinedClient",
]
