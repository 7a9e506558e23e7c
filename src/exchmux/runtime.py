"""Shared execution runtime for offloading exchange calls."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class ExecutionRuntime:
    """Bounded scheduler shared by every exchange adapter.

    Runs an asyncio event loop on a background thread. Coroutines handed to
    ``spawn`` execute on that loop, at most ``max_workers`` at a time; the
    rest wait their turn. Blocking callables go to a thread pool of the same
    size. Submission is safe from any thread.

    The host application owns the runtime: adapters only hold a reference.

    Example:
        >>> with ExecutionRuntime(max_workers=4) as runtime:
        ...     client = BinanceClient(key, secret, runtime=runtime)
        ...     client.buy_order("BTCUSDT", 0.1, 30000.0)
    """

    def __init__(self, max_workers: int = 8, *, name: str = "exchmux-runtime"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._slots: asyncio.Semaphore | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def start(self) -> ExecutionRuntime:
        """Start the event loop thread. Calling it twice is a no-op."""
        with self._lock:
            if self._thread is not None:
                return self

            loop = asyncio.new_event_loop()
            ready = threading.Event()
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=f"{self.name}-worker",
            )
            loop.set_default_executor(self._executor)

            def _run() -> None:
                asyncio.set_event_loop(loop)
                loop.call_soon(ready.set)
                loop.run_forever()

            thread = threading.Thread(target=_run, name=self.name, daemon=True)
            thread.start()
            ready.wait()

            self._loop = loop
            self._thread = thread
            self._slots = asyncio.Semaphore(self.max_workers)

        logger.info("%s started with %d workers", self.name, self.max_workers)
        return self

    def shutdown(self, wait: bool = True) -> None:
        """Stop the loop thread and release the worker pool.

        Tasks still pending are cancelled.
        """
        with self._lock:
            loop, thread, executor = self._loop, self._thread, self._executor
            self._loop = self._thread = self._executor = None
            self._slots = None

        if loop is None or thread is None:
            return

        async def _cancel_pending() -> None:
            current = asyncio.current_task()
            pending = [t for t in asyncio.all_tasks() if t is not current]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        try:
            asyncio.run_coroutine_threadsafe(_cancel_pending(), loop).result(timeout=5)
        except Exception as e:
            logger.warning("Error cancelling pending tasks on %s: %s", self.name, e)

        loop.call_soon_threadsafe(loop.stop)
        if wait:
            thread.join()
        if executor is not None:
            executor.shutdown(wait=wait)
        if wait:
            loop.close()

        logger.info("%s stopped", self.name)

    def spawn(self, coro: Awaitable[Any]) -> Future:
        """Schedule a coroutine on the runtime.

        Returns:
            concurrent.futures.Future resolving to the coroutine's result
        """
        try:
            loop, slots = self._require_loop()
        except RuntimeError:
            if asyncio.iscoroutine(coro):
                coro.close()
            raise

        async def _bounded() -> Any:
            async with slots:
                return await coro

        return asyncio.run_coroutine_threadsafe(_bounded(), loop)

    def spawn_blocking(self, func: Callable[..., Any], *args: Any) -> Future:
        """Run a blocking callable on the bounded worker pool."""
        loop, _ = self._require_loop()

        async def _in_executor() -> Any:
            return await loop.run_in_executor(None, func, *args)

        return self.spawn(_in_executor())

    def block_on(self, coro: Awaitable[Any], timeout: float | None = None) -> Any:
        """Run a coroutine on the runtime and wait for its result.

        Raises:
            RuntimeError: If called from the runtime's own loop thread
        """
        if self._thread is not None and threading.current_thread() is self._thread:
            if asyncio.iscoroutine(coro):
                coro.close()
            raise RuntimeError(f"block_on() called from inside {self.name}")
        return self.spawn(coro).result(timeout)

    def _require_loop(self) -> tuple[asyncio.AbstractEventLoop, asyncio.Semaphore]:
        loop, slots = self._loop, self._slots
        if loop is None or slots is None:
            raise RuntimeError(f"{self.name} is not running")
        return loop, slots

    def __enter__(self) -> ExecutionRuntime:
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        state = "running" if self.is_running else "stopped"
        return f"ExecutionRuntime(name={self.name!r}, max_workers={self.max_workers}, {state})"
