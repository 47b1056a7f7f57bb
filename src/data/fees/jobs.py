"""Lease-based job queue for block ranges.

Each job owns one block range of one chain. A worker holds a job through a
lease (locked_by / locked_until). Successful jobs are deleted. Failed jobs and
jobs whose lease expired can be reclaimed by any worker until they reach
MAX_JOB_ATTEMPTS, after which they stay in the table as dead letters.

State machine:
    processing (leased) -> deleted            on success
    processing (leased) -> failed             on error (lease holder only)
    failed              -> processing         on reclaim
    processing (expired) -> processing        on reclaim
"""

from __future__ import annotations

from datetime import datetime, timedelta

from typing import TYPE_CHECKING

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from src.data.fees.cursor import advance_cursor
from src.data.fees.db import BlockJobDB
from src.data.fees.models import BlockJob, JobStatus
from src.helpers.constants import MAX_JOB_ATTEMPTS, MAX_JOB_ERROR_LENGTH
from src.helpers.db import session_scope
from src.helpers.logging import get_logger


if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession


logger = get_logger(__name__)


class DuplicateRangeError(Exception):
    """A job already exists for this (chain_id, from_block).

    Ranges come from the cursor and are never handed out twice, so this
    points at a bug in range allocation rather than a transient failure.
    """

    def __init__(self, chain_id: int, from_block: int) -> None:
        self.chain_id = chain_id
        self.from_block = from_block
        super().__init__(
            f"Job for chain {chain_id} starting at block {from_block} already exists"
        )


def _lease_expiry(lease_ttl: float) -> ColumnElement[datetime]:
    return func.now() + timedelta(seconds=lease_ttl)


async def _insert_job(
    session: AsyncSession,
    chain_id: int,
    from_block: int,
    to_block: int,
    worker_id: str,
    lease_ttl: float,
) -> BlockJob:
    if from_block > to_block:
        msg = f"from_block {from_block} is after to_block {to_block}"
        raise ValueError(msg)

    stmt = (
        insert(BlockJobDB)
        .values(
            chain_id=chain_id,
            from_block=from_block,
            to_block=to_block,
            status=JobStatus.PROCESSING.value,
            locked_by=worker_id,
            locked_until=_lease_expiry(lease_ttl),
            attempts=1,
            error=None,
        )
        .returning(BlockJobDB)
    )
    try:
        row = (await session.execute(stmt)).scalar_one()
    except IntegrityError as e:
        raise DuplicateRangeError(chain_id, from_block) from e
    return BlockJob.model_validate(row)


async def create_job(
    chain_id: int,
    from_block: int,
    to_block: int,
    worker_id: str,
    lease_ttl: float,
    session: AsyncSession | None = None,
) -> BlockJob:
    """Insert a new leased job for a freshly allocated range.

    Args:
        chain_id: Chain the range belongs to
        from_block: First block of the range
        to_block: Last block of the range (inclusive)
        worker_id: Worker taking the lease
        lease_ttl: Lease length in seconds
        session: Optional session, a new one is opened otherwise

    Returns:
        The stored job, status processing with attempts = 1

    Raises:
        ValueError: If from_block is after to_block
        DuplicateRangeError: If a job for (chain_id, from_block) exists
    """
    async with session_scope(session) as s:
        return await _insert_job(
            s, chain_id, from_block, to_block, worker_id, lease_ttl
        )


async def create_next_job(
    chain_id: int,
    batch_size: int,
    max_block: int,
    worker_id: str,
    lease_ttl: float,
    session: AsyncSession | None = None,
) -> BlockJob | None:
    """Allocate the next range from the cursor and lease a job for it.

    Both writes share one transaction: if the job cannot be inserted the
    cursor is rolled back, so an allocated range always has a job.

    Args:
        chain_id: Chain to allocate from
        batch_size: Maximum number of blocks in the range
        max_block: Highest block that may be allocated (usually the chain tip)
        worker_id: Worker taking the lease
        lease_ttl: Lease length in seconds
        session: Optional session, a new one is opened otherwise

    Returns:
        The new job, or None when the cursor is at max_block or beyond

    Raises:
        ValueError: If batch_size is not positive
        DuplicateRangeError: If a job for the allocated range already exists
    """
    async with session_scope(session) as s:
        block_range = await advance_cursor(s, chain_id, batch_size, max_block)
        if block_range is None:
            return None
        job = await _insert_job(
            s,
            chain_id,
            block_range.from_block,
            block_range.to_block,
            worker_id,
            lease_ttl,
        )

    logger.debug(
        "Chain %s cursor advanced to %s, job %s covers %d blocks",
        chain_id,
        block_range.to_block + 1,
        job.id,
        block_range.size,
    )
    return job


async def claim_expired_or_failed(
    chain_id: int,
    worker_id: str,
    lease_ttl: float,
    session: AsyncSession | None = None,
) -> BlockJob | None:
    """Atomically take over one failed or lease-expired job.

    Candidates are locked with FOR UPDATE SKIP LOCKED inside the UPDATE, so
    two workers racing for the same row never both get it. The oldest range
    is picked first.

    Args:
        chain_id: Chain to look in
        worker_id: Worker taking the lease
        lease_ttl: Lease length in seconds
        session: Optional session, a new one is opened otherwise

    Returns:
        The reclaimed job with attempts incremented, or None
    """
    # Aliased so the subquery is not correlated to the UPDATE target
    job = aliased(BlockJobDB, name="candidate")
    candidate = (
        select(job.id)
        .where(
            job.chain_id == chain_id,
            job.attempts < MAX_JOB_ATTEMPTS,
            or_(
                job.status == JobStatus.FAILED.value,
                and_(
                    job.status == JobStatus.PROCESSING.value,
                    job.locked_until < func.now(),
                ),
            ),
        )
        .order_by(job.from_block)
        .limit(1)
        .with_for_update(skip_locked=True)
        .scalar_subquery()
    )
    stmt = (
        update(BlockJobDB)
        .where(BlockJobDB.id == candidate)
        .values(
            status=JobStatus.PROCESSING.value,
            locked_by=worker_id,
            locked_until=_lease_expiry(lease_ttl),
            attempts=BlockJobDB.attempts + 1,
            updated_at=func.now(),
        )
        .returning(BlockJobDB)
        .execution_options(synchronize_session=False)
    )

    async with session_scope(session) as s:
        row = (await s.execute(stmt)).scalar_one_or_none()
        return BlockJob.model_validate(row) if row is not None else None


async def mark_completed(job_id: int, session: AsyncSession | None = None) -> None:
    """Delete a finished job."""
    async with session_scope(session) as s:
        await s.execute(delete(BlockJobDB).where(BlockJobDB.id == job_id))


async def mark_failed(
    job_id: int,
    worker_id: str,
    error: str,
    session: AsyncSession | None = None,
) -> bool:
    """Release a job as failed and keep the error for diagnostics.

    Only the current lease holder can fail a job: once another worker has
    reclaimed it, a late failure from the previous holder is ignored.
    attempts is left alone: it was already incremented when the job was
    claimed.

    Returns:
        False if the job is gone or leased to another worker
    """
    stmt = (
        update(BlockJobDB)
        .where(
            BlockJobDB.id == job_id,
            BlockJobDB.locked_by == worker_id,
        )
        .values(
            status=JobStatus.FAILED.value,
            locked_by=None,
            locked_until=None,
            error=error[:MAX_JOB_ERROR_LENGTH],
            updated_at=func.now(),
        )
        .returning(BlockJobDB.id)
        .execution_options(synchronize_session=False)
    )
    async with session_scope(session) as s:
        released = (await s.execute(stmt)).scalar_one_or_none()

    if released is None:
        logger.warning(
            "[%s] Job %s is no longer leased to this worker, failure not recorded",
            worker_id,
            job_id,
        )
    return released is not None


async def find_exhausted_jobs(
    chain_id: int,
    session: AsyncSession | None = None,
) -> list[BlockJob]:
    """List jobs that ran out of attempts and will not be reclaimed."""
    stmt = (
        select(BlockJobDB)
        .where(
            BlockJobDB.chain_id == chain_id,
            BlockJobDB.attempts >= MAX_JOB_ATTEMPTS,
        )
        .order_by(BlockJobDB.from_block)
    )
    async with session_scope(session) as s:
        rows = (await s.execute(stmt)).scalars().all()
        return [BlockJob.model_validate(row) for row in rows]


async def count_exhausted_jobs(
    chain_id: int,
    session: AsyncSession | None = None,
) -> int:
    """Count dead-lettered jobs for a chain."""
    stmt = (
        select(func.count())
        .select_from(BlockJobDB)
        .where(
            BlockJobDB.chain_id == chain_id,
            BlockJobDB.attempts >= MAX_JOB_ATTEMPTS,
        )
    )
    async with session_scope(session) as s:
        return (await s.execute(stmt)).scalar_one()


async def requeue_job(job_id: int, session: AsyncSession | None = None) -> bool:
    """Give a dead-lettered job a fresh attempt budget.

    The job becomes failed with attempts = 0 so the next claim picks it up.
    Jobs that are not exhausted are left untouched.

    Returns:
        True if a job was requeued
    """
    stmt = (
        update(BlockJobDB)
        .where(
            BlockJobDB.id == job_id,
            BlockJobDB.attempts >= MAX_JOB_ATTEMPTS,
        )
        .values(
            status=JobStatus.FAILED.value,
            locked_by=None,
            locked_until=None,
            attempts=0,
            updated_at=func.now(),
        )
        .returning(BlockJobDB.id)
        .execution_options(synchronize_session=False)
    )
    async with session_scope(session) as s:
        requeued = (await s.execute(stmt)).scalar_one_or_none()

    if requeued is not None:
        logger.info("Requeued exhausted job %s", job_id)
    return requeued is not None


__all__ = [
    "DuplicateRangeError",
    "claim_expired_or_failed",
    "count_exhausted_jobs",
    "create_job",
    "create_next_job",
    "find_exhausted_jobs",
    "mark_completed",
    "mark_failed",
    "requeue_job",
]
