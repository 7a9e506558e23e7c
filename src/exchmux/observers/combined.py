"""Combined observer merging market data from several exchanges."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from ..exchanges.errors import DuplicateSymbolError, SymbolNotRoutedError
from ..exchanges.normalization import normalize_symbol
from .exchange import ExchangeObserver, MarketSnapshot

if TYPE_CHECKING:
    from ..exchanges.combined import CombinedClient

logger = logging.getLogger(__name__)


class CombinedObserver:
    """One queryable market data view over several exchange observers.

    Each symbol is served by exactly one observer. Observers run as
    independent tasks: one exchange stalling or failing does not stop the
    others from updating.
    """

    def __init__(self, observers: Iterable[ExchangeObserver]):
        registry: dict[str, ExchangeObserver] = {}
        by_name: dict[str, ExchangeObserver] = {}

        for observer in observers:
            if observer.name in by_name:
                raise ValueError(f"Duplicate observer for exchange {observer.name!r}")
            by_name[observer.name] = observer

            for symbol in observer.symbols:
                owner = registry.get(symbol)
                if owner is not None:
                    raise DuplicateSymbolError(symbol, owner.name, observer.name)
                registry[symbol] = observer

            observer.add_listener(self._publish)

        self._registry = MappingProxyType(registry)
        self._observers = MappingProxyType(by_name)
        self._subscribers: list[tuple[frozenset[str] | None, asyncio.Queue[MarketSnapshot]]] = []

    @classmethod
    def from_client(
        cls,
        client: CombinedClient,
        *,
        interval: float = 1.0,
        depth: int = 5,
    ) -> CombinedObserver:
        """Build observers for every backend of a combined client."""
        return cls(
            ExchangeObserver(client.clients[name], symbols, interval=interval, depth=depth)
            for name, symbols in client.symbols_by_exchange().items()
        )

    @property
    def symbols(self) -> list[str]:
        return sorted(self._registry)

    @property
    def observers(self) -> Mapping[str, ExchangeObserver]:
        return self._observers

    def observer_for(self, symbol: str) -> ExchangeObserver:
        """Return the observer serving ``symbol``.

        Raises:
            SymbolNotRoutedError: If no observer watches the symbol
        """
        observer = self._registry.get(normalize_symbol(symbol))
        if observer is None:
            raise SymbolNotRoutedError(symbol)
        return observer

    def get_snapshot(self, symbol: str) -> MarketSnapshot | None:
        """Latest snapshot for ``symbol``, None until the first update."""
        return self.observer_for(symbol).get_snapshot(symbol)

    def get_price(self, symbol: str) -> float | None:
        return self.observer_for(symbol).get_price(symbol)

    def snapshots(self) -> dict[str, MarketSnapshot]:
        """Latest snapshot of every symbol that has been observed so far."""
        merged: dict[str, MarketSnapshot] = {}
        for observer in self._observers.values():
            merged.update(observer.snapshots())
        return merged

    def stale_exchanges(self, max_age: float, now: float | None = None) -> list[str]:
        return [name for name, obs in self._observers.items() if obs.is_stale(max_age, now)]

    async def poll_once(self) -> dict[str, int]:
        """Poll every observer once, concurrently.

        Returns:
            Number of updated symbols per exchange (0 for a failed exchange)
        """
        names = list(self._observers)
        results = await asyncio.gather(
            *(self._observers[name].poll_once() for name in names),
            return_exceptions=True,
        )

        counts: dict[str, int] = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error("Observer %s failed: %s", name, result)
                counts[name] = 0
            elif isinstance(result, BaseException):
                raise result
            else:
                counts[name] = result
        return counts

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run every observer until ``stop`` is set."""
        stop = stop or asyncio.Event()
        await asyncio.gather(
            *(self._supervise(observer, stop) for observer in self._observers.values())
        )

    async def subscribe(
        self,
        symbols: Iterable[str] | None = None,
        maxsize: int = 1000,
    ) -> AsyncIterator[MarketSnapshot]:
        """Yield snapshots as they arrive from any exchange.

        Must be consumed on the event loop the observers run on.

        Args:
            symbols: Restrict to these symbols (all symbols if None)
            maxsize: Queue size; updates are dropped while the consumer lags
        """
        wanted = frozenset(normalize_symbol(s) for s in symbols) if symbols is not None else None
        queue: asyncio.Queue[MarketSnapshot] = asyncio.Queue(maxsize=maxsize)
        entry = (wanted, queue)
        self._subscribers.append(entry)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(entry)

    async def _supervise(self, observer: ExchangeObserver, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await observer.run(stop)
            except Exception:
                logger.exception("Observer %s crashed, restarting", observer.name)
                try:
                    await asyncio.wait_for(stop.wait(), timeout=observer.interval)
                except asyncio.TimeoutError:
                    pass

    def _publish(self, snapshot: MarketSnapshot) -> None:
        for wanted, queue in self._subscribers:
            if wanted is not None and snapshot.symbol not in wanted:
                continue
            try:
                queue.put_nowait(snapshot)
            except asyncio.QueueFull:
                logger.debug("Subscriber queue full, dropping %s update", snapshot.symbol)

    def __repr__(self) -> str:
        return f"CombinedObserver(exchanges={list(self._observers)}, symbols={self.symbols})"
