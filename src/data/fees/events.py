"""Idempotent storage for FeesCollected events."""

from __future__ import annotations

from decimal import Decimal

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.data.fees.db import FeeEventDB
from src.data.fees.models import FeeCollectedEvent, FeeEvent
from src.helpers.constants import POSTGRES_PARAM_LIMIT
from src.helpers.db import session_scope


if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


_EVENT_FIELDS = set(FeeCollectedEvent.model_fields)


async def upsert_fee_events(
    chain_id: int,
    events: Sequence[FeeCollectedEvent],
    session: AsyncSession | None = None,
) -> int:
    """Insert fee events that are not stored yet.

    (transaction_hash, log_index) is the dedup key: existing rows are never
    overwritten, so re-processing an overlapping block range is safe. A
    conflicting row, including a duplicate inside the same batch, is skipped
    without aborting the rest of the batch.

    Args:
        chain_id: Chain the events were read from
        events: Decoded events
        session: Optional session, a new one is opened otherwise

    Returns:
        Number of newly inserted rows; lower than len(events) when some were
        already stored

    Example:
        ```python
        await upsert_fee_events(137, events)  # -> len(events)
        await upsert_fee_events(137, events)  # -> 0
        ```
    """
    if not events:
        return 0

    rows = [
        {
            **event.model_dump(include=_EVENT_FIELDS),
            "chain_id": chain_id,
            "integrator_fee": Decimal(event.integrator_fee),
            "lifi_fee": Decimal(event.lifi_fee),
        }
        for event in events
    ]

    # Stay under PostgreSQL's bind parameter limit
    rows_per_statement = max(1, POSTGRES_PARAM_LIMIT // len(rows[0]))

    inserted = 0
    async with session_scope(session) as s:
        for start in range(0, len(rows), rows_per_statement):
            stmt = (
                pg_insert(FeeEventDB)
                .values(rows[start : start + rows_per_statement])
                .on_conflict_do_nothing(
                    index_elements=[FeeEventDB.transaction_hash, FeeEventDB.log_index]
                )
                .returning(FeeEventDB.id)
            )
            result = await s.execute(stmt)
            inserted += len(result.all())

    return inserted


async def find_fee_events(
    chain_id: int,
    skip: int,
    limit: int,
    session: AsyncSession | None = None,
) -> tuple[list[FeeEvent], int]:
    """Read one page of a chain's fee events, newest first.

    Args:
        chain_id: Chain to read
        skip: Number of events to skip
        limit: Maximum number of events to return
        session: Optional session, a new one is opened otherwise

    Returns:
        (events ordered by block_number desc then log_index desc, total count
        of events for the chain)
    """
    page_stmt = (
        select(FeeEventDB)
        .where(FeeEventDB.chain_id == chain_id)
        .order_by(FeeEventDB.block_number.desc(), FeeEventDB.log_index.desc())
        .offset(skip)
        .limit(limit)
    )
    count_stmt = (
        select(func.count())
        .select_from(FeeEventDB)
        .where(FeeEventDB.chain_id == chain_id)
    )

    async with session_scope(session) as s:
        rows = (await s.execute(page_stmt)).scalars().all()
        total = (await s.execute(count_stmt)).scalar_one()
        events = [FeeEvent.model_validate(row) for row in rows]

    return events, total


__all__ = [
    "find_fee_events",
    "upsert_fee_events",
]
