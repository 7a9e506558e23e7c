"""Combined client routing requests across several exchanges."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import Future
from types import MappingProxyType

from .errors import DuplicateSymbolError, MissingRuntimeError, SymbolNotRoutedError
from .normalization import normalize_asset, normalize_symbol
from .protocol import ExchangeBalance, ExchangeClient, Scheduler

logger = logging.getLogger(__name__)


class AggregatedBalances(Mapping[str, ExchangeBalance]):
    """Balances merged across exchanges.

    Behaves as a read-only mapping of asset -> summed balance. Exchanges that
    could not be queried are listed in ``errors`` and contribute nothing.
    """

    def __init__(
        self,
        balances: dict[str, ExchangeBalance],
        per_exchange: dict[str, dict[str, ExchangeBalance]],
        errors: dict[str, Exception],
    ):
        self._balances = balances
        self.per_exchange = per_exchange
        self.errors = errors

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __getitem__(self, asset: str) -> ExchangeBalance:
        return self._balances[asset]

    def __iter__(self) -> Iterator[str]:
        return iter(self._balances)

    def __len__(self) -> int:
        return len(self._balances)

    def __repr__(self) -> str:
        failed = ", ".join(self.errors) or "none"
        return f"AggregatedBalances({self._balances!r}, failed={failed})"


class CombinedClient:
    """Routes exchange operations to the backend that owns each symbol.

    Built from ``(symbols, client)`` bindings. Every symbol belongs to exactly
    one client; the registry is fixed at construction time.

    Example:
        >>> combined = CombinedClient([
        ...     (["BTCUSDT"], binance),
        ...     (["ETHUSD"], kraken),
        ... ])
        >>> combined.buy_order("BTCUSDT", 0.1, 30000.0)  # goes to binance
    """

    name = "combined"

    def __init__(self, bindings: Iterable[tuple[Iterable[str], ExchangeClient]]):
        registry: dict[str, ExchangeClient] = {}
        clients: dict[str, ExchangeClient] = {}

        for symbols, client in bindings:
            known = clients.get(client.name)
            if known is None:
                clients[client.name] = client
            elif known is not client:
                raise ValueError(f"Two different clients are named {client.name!r}")

            for symbol in symbols:
                key = normalize_symbol(symbol)
                owner = registry.get(key)
                if owner is not None and owner is not client:
                    raise DuplicateSymbolError(key, owner.name, client.name)
                registry[key] = client

        self._registry = MappingProxyType(registry)
        self._clients = MappingProxyType(clients)

        logger.info(
            "CombinedClient routing %d symbol(s) across %d exchange(s): %s",
            len(registry), len(clients), ", ".join(clients),
        )

    @property
    def symbols(self) -> list[str]:
        return sorted(self._registry)

    @property
    def clients(self) -> Mapping[str, ExchangeClient]:
        return self._clients

    def symbols_by_exchange(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {name: [] for name in self._clients}
        for symbol in self.symbols:
            grouped[self._registry[symbol].name].append(symbol)
        return grouped

    def client_for(self, symbol: str) -> ExchangeClient:
        """Return the backend owning ``symbol``.

        Raises:
            SymbolNotRoutedError: If no backend owns the symbol
        """
        client = self._registry.get(normalize_symbol(symbol))
        if client is None:
            raise SymbolNotRoutedError(symbol)
        return client

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and normalize_symbol(symbol) in self._registry

    def set_runtime(self, runtime: Scheduler) -> None:
        """Attach ``runtime`` to every backend that has none yet."""
        for client in self._clients.values():
            if not client.has_runtime():
                client.set_runtime(runtime)

    def has_runtime(self) -> bool:
        return all(client.has_runtime() for client in self._clients.values())

    def symbol_exists(self, symbol: str) -> bool:
        return self.client_for(symbol).symbol_exists(normalize_symbol(symbol))

    def buy_order(self, symbol: str, qty: float, price: float) -> Future:
        client = self.client_for(symbol)
        logger.debug("routing buy %s to %s", symbol, client.name)
        return client.buy_order(normalize_symbol(symbol), qty, price)

    def sell_order(self, symbol: str, qty: float, price: float) -> Future:
        client = self.client_for(symbol)
        logger.debug("routing sell %s to %s", symbol, client.name)
        return client.sell_order(normalize_symbol(symbol), qty, price)

    def get_balance(self, asset: str, symbol: str | None = None) -> ExchangeBalance | None:
        """Fetch the balance of ``asset``.

        With ``symbol`` the query goes to that symbol's backend only. Without
        it every backend is asked and the answers are summed.
        """
        if symbol is not None:
            return self.client_for(symbol).get_balance(asset)

        total: ExchangeBalance | None = None
        for client in self._clients.values():
            balance = client.get_balance(asset)
            if balance is None:
                continue
            if balance.asset != normalize_asset(asset):
                balance = ExchangeBalance(normalize_asset(asset), balance.free, balance.locked)
            total = balance if total is None else total + balance
        return total

    def get_balances(self) -> AggregatedBalances:
        """Fetch balances from every backend and sum them per asset.

        A failing backend is logged and listed in ``errors`` of the result;
        the other backends' balances are still returned. Asset keys are
        normalized before summing.

        Raises:
            MissingRuntimeError: If a backend cannot be read from this context
        """
        merged: dict[str, ExchangeBalance] = {}
        per_exchange: dict[str, dict[str, ExchangeBalance]] = {}
        errors: dict[str, Exception] = {}

        for name, client in self._clients.items():
            try:
                balances = client.get_balances()
            except MissingRuntimeError:
                raise
            except Exception as e:
                logger.error("Failed to fetch balances from %s: %s", name, e)
                errors[name] = e
                continue

            per_exchange[name] = dict(balances)
            for raw_asset, balance in balances.items():
                asset = normalize_asset(raw_asset)
                if balance.asset != asset:
                    balance = ExchangeBalance(asset, balance.free, balance.locked)
                merged[asset] = merged[asset] + balance if asset in merged else balance

        return AggregatedBalances(merged, per_exchange, errors)

    def __repr__(self) -> str:
        return f"CombinedClient(exchanges={list(self._clients)}, symbols={self.symbols})"
