"""Tests for fee event request parsing and pagination."""

from unittest.mock import AsyncMock

import pytest

from src.data.fees import query as query_module
from src.data.fees.models import FeeEvent
from src.data.fees.query import (
    FeesQuery,
    InvalidQueryError,
    Pagination,
    fetch_fee_page,
)


class TestFromParams:
    """Tests for FeesQuery.from_params."""

    def test_defaults(self) -> None:
        """Test an empty request."""
        query = FeesQuery.from_params({})

        assert query == FeesQuery(chain_id=137, page=1, limit=20)
        assert query.skip == 0

    def test_explicit_values(self) -> None:
        """Test that given values are used as is."""
        query = FeesQuery.from_params({"integrator": "1", "page": "3", "limit": "50"})

        assert query == FeesQuery(chain_id=1, page=3, limit=50)
        assert query.skip == 100

    def test_empty_integrator_uses_default_chain(self) -> None:
        """Test that an empty integrator falls back to Polygon."""
        assert FeesQuery.from_params({"integrator": ""}).chain_id == 137

    def test_non_numeric_integrator_raises(self) -> None:
        """Test that a non-numeric integrator is rejected."""
        with pytest.raises(InvalidQueryError, match="Expected numeric chain id"):
            FeesQuery.from_params({"integrator": "polygon"})

    @pytest.mark.parametrize(
        ("page", "expected"), [("0", 1), ("-4", 1), ("abc", 1), (None, 1), ("2", 2)]
    )
    def test_page_floor(self, page: str | None, expected: int) -> None:
        """Test that page never drops below 1."""
        assert FeesQuery.from_params({"page": page}).page == expected

    @pytest.mark.parametrize(
        ("limit", "expected"),
        [("0", 20), ("abc", 20), ("-3", 1), ("500", 100), ("100", 100), ("1", 1)],
    )
    def test_limit_clamped(self, limit: str, expected: int) -> None:
        """Test that limit stays within [1, 100]."""
        assert FeesQuery.from_params({"limit": limit}).limit == expected


class TestPagination:
    """Tests for Pagination.build."""

    @pytest.mark.parametrize(
        ("total", "limit", "pages"), [(0, 20, 0), (3, 2, 2), (40, 20, 2), (41, 20, 3)]
    )
    def test_total_pages(self, total: int, limit: int, pages: int) -> None:
        """Test total_pages = ceil(total / limit)."""
        assert Pagination.build(1, limit, total).total_pages == pages


@pytest.mark.asyncio
async def test_fetch_fee_page(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that the page is read with skip and limit from the query."""
    event = FeeEvent(
        chain_id=137,
        transaction_hash="0x" + "ab" * 32,
        log_index=1,
        block_number=200,
        token="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        integrator="0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE",
        integrator_fee="10",
        lifi_fee="2",
    )
    find = AsyncMock(return_value=([event], 3))
    monkeypatch.setattr(query_module, "find_fee_events", find)

    page = await fetch_fee_page(FeesQuery(chain_id=137, page=2, limit=2))

    find.assert_awaited_once_with(137, 2, 2)
    assert page.data == [event]
    assert page.pagination == Pagination(page=2, limit=2, total=3, total_pages=2)
