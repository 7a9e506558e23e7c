"""Per-exchange market data observer."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from ..exchanges.normalization import normalize_symbol
from ..exchanges.protocol import OrderBook

logger = logging.getLogger(__name__)


class DepthSource(Protocol):
    """Anything that can fetch an order book (every exchange adapter can)."""

    name: str

    async def fetch_depth(self, symbol: str, limit: int = 5) -> OrderBook:
        ...


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    """Latest top-of-book observation for a symbol on one exchange."""

    exchange: str
    symbol: str
    bid: float | None
    ask: float | None
    bid_qty: float | None
    ask_qty: float | None
    timestamp: int

    @property
    def price(self) -> float | None:
        if self.bid is not None and self.ask is not None:
            return (self.bid + self.ask) / 2
        return self.bid if self.bid is not None else self.ask

    @property
    def spread(self) -> float | None:
        if self.bid is None or self.ask is None:
            return None
        return self.ask - self.bid

    @classmethod
    def from_order_book(cls, exchange: str, symbol: str, book: OrderBook, timestamp: int) -> MarketSnapshot:
        bid, ask = book.best_bid, book.best_ask
        return cls(
            exchange=exchange,
            symbol=symbol,
            bid=bid.price if bid else None,
            ask=ask.price if ask else None,
            bid_qty=bid.quantity if bid else None,
            ask_qty=ask.quantity if ask else None,
            timestamp=timestamp,
        )


SnapshotListener = Callable[[MarketSnapshot], None]


class ExchangeObserver:
    """Polls order book depth for a set of symbols on one exchange.

    Snapshots are keyed by the unified symbol. A failed fetch is logged and
    leaves the previous snapshot in place.
    """

    def __init__(
        self,
        client: DepthSource,
        symbols: Iterable[str],
        *,
        interval: float = 1.0,
        depth: int = 5,
    ):
        self.client = client
        self.name = client.name
        self.symbols = sorted({normalize_symbol(s) for s in symbols})
        self.interval = interval
        self.depth = depth
        self.error_count = 0
        self.last_error: Exception | None = None
        self.last_update: float | None = None
        self._snapshots: dict[str, MarketSnapshot] = {}
        self._listeners: list[SnapshotListener] = []

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get_snapshot(self, symbol: str) -> MarketSnapshot | None:
        return self._snapshots.get(normalize_symbol(symbol))

    def get_price(self, symbol: str) -> float | None:
        snapshot = self.get_snapshot(symbol)
        return snapshot.price if snapshot else None

    def snapshots(self) -> dict[str, MarketSnapshot]:
        return dict(self._snapshots)

    def is_stale(self, max_age: float, now: float | None = None) -> bool:
        """True if nothing was received during the last ``max_age`` seconds."""
        if self.last_update is None:
            return True
        now = time.time() if now is None else now
        return now - self.last_update > max_age

    async def poll_once(self) -> int:
        """Fetch every symbol once.

        Returns:
            Number of symbols successfully updated
        """
        results = await asyncio.gather(
            *(self.client.fetch_depth(symbol, limit=self.depth) for symbol in self.symbols),
            return_exceptions=True,
        )

        updated = 0
        for symbol, result in zip(self.symbols, results):
            if isinstance(result, Exception):
                self.error_count += 1
                self.last_error = result
                logger.warning("Error fetching depth for %s on %s: %s", symbol, self.name, result)
                continue
            if isinstance(result, BaseException):
                raise result

            self._store(MarketSnapshot.from_order_book(self.name, symbol, result, int(time.time() * 1000)))
            updated += 1

        return updated

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Poll until ``stop`` is set (or forever)."""
        stop = stop or asyncio.Event()
        logger.info("observer %s watching %s", self.name, ", ".join(self.symbols))

        while not stop.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("observer %s stopped", self.name)

    def _store(self, snapshot: MarketSnapshot) -> None:
        self._snapshots[snapshot.symbol] = snapshot
        self.last_update = time.time()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("Snapshot listener failed on %s: %s", self.name, e)

    def __repr__(self) -> str:
        return f"ExchangeObserver(name={self.name!r}, symbols={self.symbols})"
