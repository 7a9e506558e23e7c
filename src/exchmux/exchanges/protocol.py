"""Protocol definition for exchange clients."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol


@dataclass(frozen=True, slots=True)
class ExchangeBalance:
    """Account balance for a single asset."""

    asset: str
    free: float
    locked: float = 0.0

    @property
    def total(self) -> float:
        return self.free + self.locked

    def __add__(self, other: ExchangeBalance) -> ExchangeBalance:
        if not isinstance(other, ExchangeBalance):
            return NotImplemented
        if other.asset != self.asset:
            raise ValueError(f"Cannot add balances of {self.asset} and {other.asset}")
        return ExchangeBalance(self.asset, self.free + other.free, self.locked + other.locked)


class OrderSide(Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True, slots=True)
class OrderIntent:
    """A limit order about to be handed to an adapter."""

    symbol: str
    side: OrderSide
    quantity: float
    price: float
    time_in_force: str = "GTC"
    order_type: str = "LIMIT"


class Order:
    """Represents an order accepted by an exchange."""

    def __init__(
        self,
        order_id: str,
        symbol: str,
        side: str,
        quantity: float,
        price: float,
        status: str,
    ):
        self.order_id = order_id
        self.symbol = symbol
        self.side = side
        self.quantity = quantity
        self.price = price
        self.status = status

    def __repr__(self) -> str:
        return (
            f"Order(order_id={self.order_id!r}, symbol={self.symbol!r}, side={self.side!r}, "
            f"quantity={self.quantity}, price={self.price}, status={self.status!r})"
        )


@dataclass(frozen=True, slots=True)
class DepthLevel:
    price: float
    quantity: float


@dataclass(frozen=True, slots=True)
class OrderBook:
    """Top of an exchange order book."""

    symbol: str
    bids: list[DepthLevel] = field(default_factory=list)
    asks: list[DepthLevel] = field(default_factory=list)

    @property
    def best_bid(self) -> DepthLevel | None:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> DepthLevel | None:
        return self.asks[0] if self.asks else None

    @property
    def mid(self) -> float | None:
        bid, ask = self.best_bid, self.best_ask
        if bid and ask:
            return (bid.price + ask.price) / 2
        if bid:
            return bid.price
        if ask:
            return ask.price
        return None


class Scheduler(Protocol):
    """Shared executor that order submissions are offloaded to."""

    def spawn(self, coro: Awaitable[Any]) -> Future:
        """Schedule a coroutine and return a future for its result."""
        ...

    def spawn_blocking(self, func: Callable[..., Any], *args: Any) -> Future:
        """Run a blocking callable on the bounded worker pool."""
        ...

    def block_on(self, coro: Awaitable[Any], timeout: float | None = None) -> Any:
        """Run a coroutine on the scheduler and wait for its result."""
        ...


class ExchangeClient(Protocol):
    """Capability contract every exchange backend satisfies."""

    name: str

    def has_runtime(self) -> bool:
        """Whether a scheduler is attached for order submission."""
        ...

    def set_runtime(self, runtime: Scheduler) -> None:
        ...

    def symbol_exists(self, symbol: str) -> bool:
        """Check whether the exchange currently trades the symbol.

        Issues a live depth query. Failures are reported as ``False``.
        """
        ...

    def get_balance(self, asset: str) -> ExchangeBalance | None:
        """Fetch the balance of a single asset, or None on any failure."""
        ...

    def get_balances(self) -> dict[str, ExchangeBalance]:
        """Fetch all balances of the account.

        Raises:
            ExchangeAPIError: If the exchange could not be queried
        """
        ...

    def buy_order(self, symbol: str, qty: float, price: float) -> Future:
        """Submit a GTC limit buy order without waiting for the exchange.

        Returns:
            Future resolving to the accepted Order, or None if the exchange
            rejected it

        Raises:
            MissingRuntimeError: If no scheduler is attached
        """
        ...

    def sell_order(self, symbol: str, qty: float, price: float) -> Future:
        """Submit a GTC limit sell order without waiting for the exchange."""
        ...
