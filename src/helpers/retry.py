"""Retry helpers for store operations."""

from __future__ import annotations

from asyncio import sleep

from typing import TYPE_CHECKING, TypeVar

from src.helpers.constants import STORE_RETRY_ATTEMPTS, STORE_RETRY_DELAY
from src.helpers.db import check_connection, reconnect
from src.helpers.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


logger = get_logger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    worker_id: str,
    max_attempts: int = STORE_RETRY_ATTEMPTS,
    base_delay: float = STORE_RETRY_DELAY,
    give_up_on: tuple[type[BaseException], ...] = (),
) -> T:
    """Await a store operation, retrying with linear backoff.

    After every failed attempt but the last, the database health is checked
    and the engine is recreated if the check fails. Only pass operations that
    are safe to run again: idempotent or a single transaction.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        worker_id: Worker identity used in log lines and for reconnects
        max_attempts: Total number of attempts (default: 3)
        base_delay: Backoff step in seconds; attempt n waits n * base_delay
        give_up_on: Exception types re-raised immediately without retrying

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        ValueError: If max_attempts is lower than 1
        Exception: The last error once all attempts are exhausted

    Example:
        ```python
        from src.helpers.retry import with_retry

        # Waits 2s then 4s between attempts
        await with_retry(
            lambda: seed_cursor(137, 78_600_000),
            worker_id="worker-1",
        )
        ```
    """
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValueError(msg)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except give_up_on:
            raise
        except Exception as e:
            if attempt == max_attempts:
                logger.error(
                    "[%s] Retry failed after %d attempts. Error: %s",
                    worker_id,
                    max_attempts,
                    e,
                )
                raise

            logger.warning(
                "[%s] Store operation failed (attempt %d/%d): %s",
                worker_id,
                attempt,
                max_attempts,
                e,
            )

        if not await check_connection():
            logger.warning("[%s] Database unhealthy, reconnecting", worker_id)
            try:
                await reconnect()
            except Exception as e:
                logger.warning("[%s] Reconnect failed: %s", worker_id, e)

        await sleep(base_delay * attempt)

    # Unreachable: the loop either returns or raises
    msg = "with_retry exited without a result"
    raise RuntimeError(msg)


__all__ = ["with_retry"]
