"""Pytest configuration and fixtures."""

import asyncio
from concurrent.futures import Future
from unittest.mock import AsyncMock, MagicMock

import pytest

from exchmux.exchanges.protocol import ExchangeBalance, Order


def create_async_response(status=200, json_data=None, text=""):
    """Create a mock aiohttp response usable as an async context manager."""
    resp = AsyncMock()
    resp.status = status
    resp.json = AsyncMock(return_value=json_data if json_data is not None else {})
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


def create_mock_session(*responses):
    """Create a mock aiohttp session answering requests with ``responses`` in order."""
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    session.request = MagicMock(side_effect=list(responses))
    return session


def install_responses(client, *responses):
    """Make every request of ``client`` answer with the next response.

    Returns the list of mock sessions; each request opens one session.
    """
    sessions = [create_mock_session(resp) for resp in responses]
    client._new_session = MagicMock(side_effect=sessions)
    return sessions


class FakeScheduler:
    """Scheduler that records submissions and runs them on demand."""

    def __init__(self):
        self.submitted = []

    def spawn(self, coro):
        future = Future()
        self.submitted.append((coro, future))
        return future

    def spawn_blocking(self, func, *args):
        future = Future()
        future.set_result(func(*args))
        return future

    def block_on(self, coro, timeout=None):
        return asyncio.run(coro)

    def run_all(self):
        """Run every pending submission to completion."""
        pending, self.submitted = self.submitted, []
        for coro, future in pending:
            future.set_result(asyncio.run(coro))
        return [future.result() for _, future in pending]


class StubExchangeClient:
    """In-memory ExchangeClient recording every call."""

    def __init__(self, name, balances=None, *, fail_balances=None, symbols=None, runtime=None):
        self.name = name
        self.runtime = runtime
        self.balances = balances or {}
        self.fail_balances = fail_balances
        self.symbols = set(symbols or [])
        self.orders = []
        self.calls = []

    def has_runtime(self):
        return self.runtime is not None

    def set_runtime(self, runtime):
        self.runtime = runtime

    def symbol_exists(self, symbol):
        self.calls.append(("symbol_exists", symbol))
        return symbol in self.symbols

    def get_balance(self, asset):
        self.calls.append(("get_balance", asset))
        return self.balances.get(asset.upper())

    def get_balances(self):
        self.calls.append(("get_balances",))
        if self.fail_balances is not None:
            raise self.fail_balances
        return dict(self.balances)

    def buy_order(self, symbol, qty, price):
        return self._order("buy", symbol, qty, price)

    def sell_order(self, symbol, qty, price):
        return self._order("sell", symbol, qty, price)

    def _order(self, side, symbol, qty, price):
        self.calls.append((f"{side}_order", symbol, qty, price))
        self.orders.append((side, symbol, qty, price))
        future = Future()
        future.set_result(Order(str(len(self.orders)), symbol, side, qty, price, "new"))
        return future


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def api_secret():
    """Test API secret."""
    return "test_api_secret_789012"


@pytest.fixture
def kraken_secret():
    """Kraken secrets are base64 encoded."""
    return "a3Jha2VuX3Rlc3Rfc2VjcmV0X2tleQ=="


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def binance_depth_response():
    return {
        "lastUpdateId": 1027024,
        "bids": [["30000.00", "1.5"], ["29999.00", "2.0"]],
        "asks": [["30001.00", "0.5"], ["30002.00", "3.0"]],
    }


@pytest.fixture
def binance_account_response():
    return {
        "balances": [
            {"asset": "BTC", "free": "0.5", "locked": "0.1"},
            {"asset": "ETH", "free": "10.0", "locked": "2.0"},
            {"asset": "USDT", "free": "1000.0", "locked": "0.0"},
        ]
    }


@pytest.fixture
def sample_balances():
    return {
        "BTC": ExchangeBalance("BTC", 1.0, 0.0),
        "USDT": ExchangeBalance("USDT", 500.0, 100.0),
    }
