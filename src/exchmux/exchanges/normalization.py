"""Symbol normalization utilities for exchange symbols."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str, format: str = "unified") -> str:
    """Normalize a symbol to a standard format.

    Converts various symbol formats to a unified format:
    - BTCUSDT -> BTCUSDT (unchanged if unified format)
    - BTC-USDT -> BTCUSDT
    - BTC/USDT -> BTCUSDT

    The unified form is the routing key of the combined client, so applying
    this function twice yields the same value as applying it once.

    Args:
        symbol: Symbol in any format
        format: Target format ('unified' for BTCUSDT, 'lower' for btcusdt)

    Returns:
        Normalized symbol
    """
    if not symbol:
        return symbol

    unified = symbol.strip().replace("-", "").replace("/", "").replace("_", "").replace(" ", "").upper()

    if format == "lower":
        return unified.lower()
    return unified


def normalize_asset(asset: str) -> str:
    """Normalize an asset code (e.g. ' btc ' -> 'BTC')."""
    if not asset:
        return asset
    return asset.strip().upper()


def check_symbol_mismatch(
    expected: str,
    actual: str,
    logger_func: Any = None,
) -> bool:
    """Check if two symbols represent the same trading pair.

    Logs a warning if they don't match.

    Args:
        expected: Expected symbol
        actual: Actual symbol
        logger_func: Logger function (defaults to logging.warning)

    Returns:
        True if symbols match, False otherwise
    """
    if logger_func is None:
        logger_func = logger.warning

    expected_normalized = normalize_symbol(expected)
    actual_normalized = normalize_symbol(actual)

    if expected_normalized != actual_normalized:
        logger_func(
            f"Symbol mismatch: expected {expected} ({expected_normalized}), "
            f"got {actual} ({actual_normalized})"
        )
        return False

    return True
