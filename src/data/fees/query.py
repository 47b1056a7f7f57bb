"""Read side for fee events: request parsing and pagination."""

from __future__ import annotations

import math

from typing import Any

from pydantic import BaseModel

from src.data.fees.events import find_fee_events
from src.data.fees.models import FeeEvent
from src.helpers.constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    MIN_LIMIT,
)

INVALID_INTEGRATOR_ERROR = "Invalid integrator value. Expected numeric chain id."


class InvalidQueryError(ValueError):
    """Request parameters cannot be turned into a query."""


def _to_int(value: Any) -> int | None:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return None


class FeesQuery(BaseModel):
    """Which page of which chain's fee events to read."""

    chain_id: int
    page: int
    limit: int

    @property
    def skip(self) -> int:
        """Events before the requested page."""
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> FeesQuery:
        """Parse raw request parameters.

        "integrator" carries the chain id. Missing or empty falls back to
        the default chain. page below 1 or unparsable becomes 1. limit is
        clamped to [1, 100] and defaults to 20 when missing, zero or
        unparsable.

        Raises:
            InvalidQueryError: If integrator is given but not numeric

        Example:
            >>> FeesQuery.from_params({"page": "2", "limit": "500"})
            FeesQuery(chain_id=137, page=2, limit=100)
        """
        raw_chain_id = params.get("integrator")
        if raw_chain_id is None or raw_chain_id == "":
            chain_id = DEFAULT_CHAIN_ID
        else:
            parsed = _to_int(raw_chain_id)
            if parsed is None:
                raise InvalidQueryError(INVALID_INTEGRATOR_ERROR)
            chain_id = parsed

        page = max(_to_int(params.get("page")) or DEFAULT_PAGE, DEFAULT_PAGE)
        limit = min(
            max(_to_int(params.get("limit")) or DEFAULT_LIMIT, MIN_LIMIT), MAX_LIMIT
        )
        return cls(chain_id=chain_id, page=page, limit=limit)


class Pagination(BaseModel):
    """Pagination metadata returned next to a page of events."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        """Compute total_pages = ceil(total / limit)."""
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        )


class FeePage(BaseModel):
    """One page of fee events."""

    data: list[FeeEvent]
    pagination: Pagination


async def fetch_fee_page(query: FeesQuery) -> FeePage:
    """Read the page described by query."""
    events, total = await find_fee_events(query.chain_id, query.skip, query.limit)
    return FeePage(
        data=events,
        pagination=Pagination.build(query.page, query.limit, total),
    )


__all__ = [
    "INVALID_INTEGRATOR_ERROR",
    "FeePage",
    "FeesQuery",
    "InvalidQueryError",
    "Pagination",
    "fetch_fee_page",
]
