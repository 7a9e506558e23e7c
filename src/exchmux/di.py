from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exchanges.base import BaseExchangeClient
from .exchanges.combined import CombinedClient
from .observers.combined import CombinedObserver
from .runtime import ExecutionRuntime

if TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContainer:
    settings: "Settings"
    runtime: ExecutionRuntime
    client: CombinedClient
    observer: CombinedObserver
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)
    exchange_clients: dict[str, BaseExchangeClient] = field(default_factory=dict)

    def close(self) -> None:
        """Stop the shared runtime."""
        self.runtime.shutdown()


def build_container(
    settings: "Settings",
    exchange_clients: dict[str, BaseExchangeClient] | None = None,
    runtime: ExecutionRuntime | None = None,
) -> AppContainer:
    """Wire the runtime, exchange clients, combined client and observer.

    The runtime is started here; call ``AppContainer.close()`` to stop it.
    """
    from .exchanges.init import build_combined_client, create_exchange_clients_from_settings

    runtime = runtime or ExecutionRuntime(max_workers=settings.runtime.max_workers)
    runtime.start()

    if exchange_clients is None:
        exchange_clients = create_exchange_clients_from_settings(settings, runtime)

    try:
        client = build_combined_client(settings, exchange_clients)
    except Exception:
        runtime.shutdown()
        raise
    client.set_runtime(runtime)

    observer = CombinedObserver.from_client(
        client,
        interval=settings.observer.interval,
        depth=settings.observer.depth,
    )

    logger.info("container ready: %r", client)
    return AppContainer(
        settings=settings,
        runtime=runtime,
        client=client,
        observer=observer,
        exchange_clients=exchange_clients,
    )
