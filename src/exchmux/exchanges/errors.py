"""Exceptions raised by the exchange layer."""

from __future__ import annotations


class ExchangeError(Exception):
    """Base class for exchange layer errors."""


class ExchangeAPIError(ExchangeError):
    """An exchange answered with an error or could not be reached."""

    def __init__(self, exchange: str, message: str, status: int | None = None):
        self.exchange = exchange
        self.status = status
        detail = f"{exchange}: {message}"
        if status is not None:
            detail = f"{detail} (HTTP {status})"
        super().__init__(detail)


class SymbolNotRoutedError(ExchangeError, KeyError):
    """No backend is registered for the requested symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(symbol)

    def __str__(self) -> str:
        return f"Symbol {self.symbol!r} is not routed to any exchange"


class DuplicateSymbolError(ExchangeError, ValueError):
    """Two backends claim the same symbol."""

    def __init__(self, symbol: str, first: str, second: str):
        self.symbol = symbol
        super().__init__(f"Symbol {symbol!r} is claimed by both {first} and {second}")


class MissingRuntimeError(RuntimeError):
    """An order was issued through an adapter with no scheduler attached."""
