"""Exchange client initialization from settings."""

from __future__ import annotations

import logging
from typing import Dict

from .base import BaseExchangeClient
from .combined import CombinedClient
from .factory import create_exchange_client
from .protocol import Scheduler
from ..settings import Settings

logger = logging.getLogger(__name__)


def create_exchange_clients_from_settings(
    settings: Settings,
    runtime: Scheduler | None = None,
) -> Dict[str, BaseExchangeClient]:
    """Create exchange clients from settings configuration."""
    clients: Dict[str, BaseExchangeClient] = {}

    for exchange_name, exchange_config in settings.exchanges.items():
        if not exchange_config.enabled:
            logger.debug("Exchange %s is disabled, skipping", exchange_name)
            continue

        if not exchange_config.credentials:
            logger.warning("Exchange %s has no credentials configured, skipping", exchange_name)
            continue

        try:
            client = create_exchange_client(
                exchange=exchange_name,
                api_key=exchange_config.credentials.api_key.get_secret_value(),
                api_secret=exchange_config.credentials.api_secret.get_secret_value(),
                runtime=runtime,
                sandbox=exchange_config.sandbox,
                proxy=settings.proxy.as_dict(),
                timeout=exchange_config.timeout,
                **exchange_config.options,
            )
        except Exception as e:
            logger.error("Failed to initialize exchange client for %s: %s", exchange_name, e)
            continue

        clients[exchange_name] = client
        logger.info("Initialized exchange client for %s", exchange_name)

    return clients


def build_combined_client(
    settings: Settings,
    clients: Dict[str, BaseExchangeClient],
) -> CombinedClient:
    """Bind each client to the symbols configured for its exchange.

    Raises:
        DuplicateSymbolError: If two exchanges list the same symbol
    """
    bindings = []
    for exchange_name, client in clients.items():
        symbols = settings.exchanges[exchange_name].symbols
        if not symbols:
            logger.warning("Exchange %s has no symbols configured", exchange_name)
        bindings.append((symbols, client))
    return CombinedClient(bindings)
