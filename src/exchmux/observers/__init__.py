"""Market data observers."""

from .exchange import ExchangeObserver, MarketSnapshot
from .combined import CombinedObserver

__all__ = [
    "ExchangeObserver",
    "MarketSnapshot",
    "CombinedObserver",
]
