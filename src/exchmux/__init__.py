"""exchmux: one trading and market data surface over several exchanges."""

from .settings import Settings
from .runtime import ExecutionRuntime
from .exchanges import CombinedClient, ExchangeBalance, ExchangeClient, normalize_symbol
from .observers import CombinedObserver, ExchangeObserver

__all__ = [
    "Settings",
    "ExecutionRuntime",
    "CombinedClient",
    "ExchangeBalance",
    "ExchangeClient",
    "normalize_symbol",
    "CombinedObserver",
    "ExchangeObserver",
]
