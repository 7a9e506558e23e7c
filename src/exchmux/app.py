from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .config import load_settings
from .di import AppContainer, build_container
from .logging import configure_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point supporting both CLI commands and watch mode.

    - `exchmux` or `exchmux watch`: poll market data from every configured exchange
    - `exchmux <typer-subcommand>`: run CLI mode (e.g. `exchmux balances`)
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        return _run_watch_mode([])

    if argv[0] == "watch":
        return _run_watch_mode(argv[1:])

    return _run_cli_mode(argv)


async def watch(container: AppContainer) -> None:
    """Run the combined observer until shutdown, reporting stale exchanges."""
    settings = container.settings
    observer = container.observer
    logger.info("watch starting")
    logger.debug("settings=%s", settings.redacted())

    if not observer.symbols:
        logger.error("no symbols configured, nothing to watch")
        return

    async def _report() -> None:
        while not container.shutdown.is_set():
            try:
                await asyncio.wait_for(container.shutdown.wait(), timeout=settings.observer.max_age)
            except asyncio.TimeoutError:
                pass
            stale = observer.stale_exchanges(settings.observer.max_age)
            if stale:
                logger.warning("no market data for %.0fs from: %s", settings.observer.max_age, ", ".join(stale))
            for symbol, snapshot in sorted(observer.snapshots().items()):
                logger.info(
                    "%s@%s bid=%s ask=%s", symbol, snapshot.exchange, snapshot.bid, snapshot.ask
                )

    async with asyncio.TaskGroup() as tg:
        tg.create_task(observer.run(container.shutdown))
        tg.create_task(_report())

    logger.info("watch stopped")


def _run_watch_mode(argv: list[str]) -> int:
    """Run the market data watch loop in the foreground."""
    parser = argparse.ArgumentParser(
        prog="exchmux watch", description="Watch market data across configured exchanges"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (default: EXCHMUX_CONFIG or ./config.yml)",
    )

    args = parser.parse_args(argv)
    configure_logging(Path("logs"))

    settings = load_settings(args.config)
    container = build_container(settings)

    async def _main() -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, container.shutdown.set)
            except NotImplementedError:
                logger.debug("signal handlers not supported on this platform")
        await watch(container)

    logger.info("exchmux watch booting")
    try:
        asyncio.run(_main())
    finally:
        container.close()
    logger.info("exchmux watch exit")

    return 0


def _run_cli_mode(argv: list[str]) -> int:
    """Run in CLI mode using Typer."""
    try:
        configure_logging(Path("logs"))

        # Import CLI app here to avoid circular import
        from .cli import run_cli
        run_cli(argv)
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except Exception as e:
        logger.error("CLI error: %s", e, exc_info=True)
        return 1
