"""Block cursor: hands out contiguous, non-overlapping block ranges per chain.

The cursor row stores the next block that has not been allocated to any job.
Claims advance it with a single UPDATE statement, so concurrent workers always
receive disjoint ranges without gaps.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import aliased

from src.data.fees.db import BlockCursorDB
from src.data.fees.models import BlockRange
from src.helpers.db import session_scope
from src.helpers.logging import get_logger


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


logger = get_logger(__name__)


async def seed_cursor(
    chain_id: int,
    start_point: int,
    session: AsyncSession | None = None,
) -> None:
    """Create the cursor for a chain at start_point unless it already exists.

    An existing cursor is never moved, so re-seeding with another start point
    is a no-op.

    Args:
        chain_id: Chain to seed
        start_point: First block to index
        session: Optional session, a new one is opened otherwise
    """
    stmt = (
        pg_insert(BlockCursorDB)
        .values(chain_id=chain_id, block_number=start_point, updated_at=func.now())
        .on_conflict_do_nothing(index_elements=[BlockCursorDB.chain_id])
    )
    async with session_scope(session) as s:
        await s.execute(stmt)


async def get_cursor(
    chain_id: int,
    session: AsyncSession | None = None,
) -> int | None:
    """Return the next unallocated block for a chain, None if not seeded."""
    stmt = select(BlockCursorDB.block_number).where(BlockCursorDB.chain_id == chain_id)
    async with session_scope(session) as s:
        return (await s.execute(stmt)).scalar_one_or_none()


def _check_batch_size(batch_size: int) -> None:
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)


async def advance_cursor(
    session: AsyncSession,
    chain_id: int,
    batch_size: int,
    max_block: int,
) -> BlockRange | None:
    """Advance the cursor inside the caller's transaction.

    Nothing is committed here: the cursor row stays locked until the caller
    commits, and a rollback puts the range back.

    Args:
        session: Session with an open transaction
        chain_id: Chain to allocate from
        batch_size: Maximum number of blocks in the range
        max_block: Highest block that may be allocated

    Returns:
        The allocated inclusive range, or None when nothing is left below
        max_block
    """
    _check_batch_size(batch_size)

    locked = aliased(BlockCursorDB, name="locked")
    previous = (
        select(locked.chain_id, locked.block_number)
        .where(locked.chain_id == chain_id)
        .with_for_update()
        .subquery("previous")
    )
    stmt = (
        update(BlockCursorDB)
        .where(BlockCursorDB.chain_id == previous.c.chain_id)
        .where(BlockCursorDB.block_number < max_block)
        .values(
            block_number=func.least(
                BlockCursorDB.block_number + batch_size, max_block + 1
            ),
            updated_at=func.now(),
        )
        .returning(previous.c.block_number)
        .execution_options(synchronize_session=False)
    )

    from_block = (await session.execute(stmt)).scalar_one_or_none()
    if from_block is None:
        return None

    return BlockRange(
        from_block=from_block,
        to_block=min(from_block + batch_size - 1, max_block),
    )


async def claim_next_range(
    chain_id: int,
    batch_size: int,
    max_block: int,
    session: AsyncSession | None = None,
) -> BlockRange | None:
    """Atomically allocate the next block range below the chain tip.

    The cursor moves to min(cursor + batch_size, max_block + 1) and the
    previous value becomes from_block. Read and advance happen in one
    statement: the row is locked by the inner SELECT ... FOR UPDATE and the
    pre-update value is returned from it.

    Args:
        chain_id: Chain to allocate from
        batch_size: Maximum number of blocks in the range
        max_block: Highest block that may be allocated (usually the chain tip)
        session: Optional session, a new one is opened otherwise

    Returns:
        The claimed inclusive range, or None when the cursor is at max_block
        or beyond (or the chain was never seeded)

    Raises:
        ValueError: If batch_size is not positive

    Example:
        ```python
        await seed_cursor(137, 100)
        await claim_next_range(137, batch_size=10, max_block=109)
        # BlockRange(from_block=100, to_block=109), cursor is now 110
        await claim_next_range(137, batch_size=10, max_block=109)
        # None
        ```
    """
    _check_batch_size(batch_size)

    async with session_scope(session) as s:
        block_range = await advance_cursor(s, chain_id, batch_size, max_block)

    if block_range is not None:
        logger.debug(
            "Chain %s cursor advanced to %s", chain_id, block_range.to_block + 1
        )
    return block_range


__all__ = [
    "advance_cursor",
    "claim_next_range",
    "get_cursor",
    "seed_cursor",
]
