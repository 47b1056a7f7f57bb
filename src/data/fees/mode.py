"""Collector operating modes and the lag-driven transitions between them."""

from enum import StrEnum

from src.helpers.config import CollectorSettings
from src.helpers.constants import HISTORICAL_LAG_FACTOR, REALTIME_LAG_FACTOR


class CollectorMode(StrEnum):
    """Historical drains the backlog; realtime follows a caught-up chain."""

    HISTORICAL = "historical"
    REALTIME = "realtime"


INITIAL_MODE = CollectorMode.HISTORICAL


def next_mode(current: CollectorMode, lag: int, batch_size: int) -> CollectorMode:
    """Compute the mode after a range was allocated.

    Args:
        current: Mode before the allocation
        lag: Chain tip minus the last block of the allocated range
        batch_size: Blocks per range

    Returns:
        REALTIME once lag is within one batch, HISTORICAL again once lag
        reaches five batches, otherwise the current mode

    Example:
        >>> next_mode(CollectorMode.HISTORICAL, lag=10, batch_size=10)
        <CollectorMode.REALTIME: 'realtime'>
        >>> next_mode(CollectorMode.REALTIME, lag=49, batch_size=10)
        <CollectorMode.REALTIME: 'realtime'>
    """
    if current is CollectorMode.HISTORICAL and lag <= batch_size * REALTIME_LAG_FACTOR:
        return CollectorMode.REALTIME

    if current is CollectorMode.REALTIME and lag >= batch_size * HISTORICAL_LAG_FACTOR:
        return CollectorMode.HISTORICAL

    return current


def poll_interval(mode: CollectorMode, settings: CollectorSettings) -> float:
    """Seconds to idle between cycles in the given mode."""
    if mode is CollectorMode.REALTIME:
        return settings.realtime_poll_interval
    return settings.historical_poll_interval


__all__ = [
    "INITIAL_MODE",
    "CollectorMode",
    "next_mode",
    "poll_interval",
]
