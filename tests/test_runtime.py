"""Tests for the shared execution runtime."""

import asyncio
import threading
import time
from collections import Counter

import pytest

from exchmux.exchanges.binance import BinanceClient
from exchmux.runtime import ExecutionRuntime


@pytest.fixture
def runtime():
    rt = ExecutionRuntime(max_workers=4, name="test-runtime").start()
    yield rt
    rt.shutdown()


class TestExecutionRuntime:
    def test_spawn_returns_result(self, runtime):
        async def work():
            await asyncio.sleep(0)
            return 42

        assert runtime.spawn(work()).result(timeout=5) == 42

    def test_block_on(self, runtime):
        async def work():
            return threading.current_thread().name

        assert runtime.block_on(work(), timeout=5) == "test-runtime"

    def test_spawn_blocking_runs_on_worker_pool(self, runtime):
        def work(x):
            return x * 2, threading.current_thread().name

        value, thread_name = runtime.spawn_blocking(work, 21).result(timeout=5)

        assert value == 42
        assert thread_name.startswith("test-runtime-worker")

    def test_exception_is_delivered_through_future(self, runtime):
        async def boom():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            runtime.spawn(boom()).result(timeout=5)

    def test_concurrent_submissions_run_exactly_once(self, runtime):
        executed = Counter()
        lock = threading.Lock()

        async def task(i):
            await asyncio.sleep(0.001)
            with lock:
                executed[i] += 1
            return i

        futures = []
        futures_lock = threading.Lock()

        def submit(start):
            for i in range(start, start + 50):
                future = runtime.spawn(task(i))
                with futures_lock:
                    futures.append(future)

        threads = [threading.Thread(target=submit, args=(n * 50,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        results = {f.result(timeout=10) for f in futures}

        assert results == set(range(400))
        assert len(executed) == 400
        assert all(count == 1 for count in executed.values())

    def test_concurrency_is_bounded(self, runtime):
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        futures = [runtime.spawn(task()) for _ in range(20)]
        for f in futures:
            f.result(timeout=10)

        assert peak <= runtime.max_workers

    def test_spawn_does_not_wait_for_task(self, runtime):
        gate = threading.Event()

        def slow():
            gate.wait(5)
            return "done"

        start = time.monotonic()
        future = runtime.spawn_blocking(slow)
        assert time.monotonic() - start < 1
        assert not future.done()

        gate.set()
        assert future.result(timeout=5) == "done"

    def test_block_on_from_runtime_thread_refused(self, runtime):
        async def inner():
            return 1

        async def outer():
            return runtime.block_on(inner())

        with pytest.raises(RuntimeError, match="block_on"):
            runtime.spawn(outer()).result(timeout=5)


class TestLifecycle:
    def test_spawn_before_start_raises(self):
        rt = ExecutionRuntime()

        async def work():
            return 1

        with pytest.raises(RuntimeError, match="not running"):
            rt.spawn(work())

    def test_context_manager(self):
        with ExecutionRuntime(max_workers=2) as rt:
            assert rt.is_running
        assert not rt.is_running

    def test_start_twice_is_noop(self):
        rt = ExecutionRuntime(max_workers=1)
        try:
            assert rt.start() is rt
            thread = rt._thread
            rt.start()
            assert rt._thread is thread
        finally:
            rt.shutdown()

    def test_shutdown_cancels_pending(self):
        rt = ExecutionRuntime(max_workers=1).start()

        async def forever():
            await asyncio.sleep(3600)

        future = rt.spawn(forever())
        rt.shutdown()

        assert future.cancelled() or future.done()

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            ExecutionRuntime(max_workers=0)


class TestAdapterIntegration:
    def test_many_orders_from_many_threads(self, runtime):
        client = BinanceClient("key", "secret", runtime=runtime)
        submitted = Counter()
        lock = threading.Lock()

        async def fake_submit(intent):
            await asyncio.sleep(0)
            with lock:
                submitted[(intent.side.value, intent.price)] += 1
            return intent

        client.submit_limit_order = fake_submit

        futures = []
        futures_lock = threading.Lock()

        def place(offset):
            for i in range(25):
                f = client.buy_order("btcusdt", 0.01, float(offset + i))
                with futures_lock:
                    futures.append(f)

        threads = [threading.Thread(target=place, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for f in futures:
            f.result(timeout=10)

        assert sum(submitted.values()) == 100
        assert all(count == 1 for count in submitted.values())
