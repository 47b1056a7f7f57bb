"""Pydantic models for fee collection."""

# Pydantic needs this at runtime to validate the datetime fields
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class JobStatus(StrEnum):
    """State of a block job. Completed jobs are deleted, not stored."""

    PROCESSING = "processing"
    FAILED = "failed"


class BlockRange(BaseModel):
    """Inclusive block range handed out by the cursor."""

    from_block: int = Field(ge=0)
    to_block: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> Self:
        if self.from_block > self.to_block:
            msg = f"from_block {self.from_block} is after to_block {self.to_block}"
            raise ValueError(msg)
        return self

    @property
    def size(self) -> int:
        """Number of blocks in the range."""
        return self.to_block - self.from_block + 1


class BlockJob(BaseModel):
    """Block job as stored in the job queue."""

    id: int
    chain_id: int
    from_block: int
    to_block: int
    status: JobStatus
    locked_by: str | None = None
    locked_until: datetime | None = None
    attempts: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _to_decimal_string(value: Any) -> Any:
    # Fee amounts are uint256; never round-trip them through float
    if isinstance(value, bool):
        msg = "fee amount must be an integer"
        raise ValueError(msg)  # noqa: TRY004
    if isinstance(value, int):
        if value < 0:
            msg = "fee amount must be unsigned"
            raise ValueError(msg)
        return str(value)
    if isinstance(value, Decimal):
        if value != value.to_integral_value() or value < 0:
            msg = f"fee amount must be an unsigned integer, got {value}"
            raise ValueError(msg)
        return str(int(value))
    if isinstance(value, str) and not value.isdigit():
        msg = f"fee amount must be a decimal string, got {value!r}"
        raise ValueError(msg)
    return value


class FeeCollectedEvent(BaseModel):
    """FeesCollected event decoded from a chain log."""

    transaction_hash: str
    log_index: int = Field(ge=0)
    block_number: int = Field(ge=0)
    token: str
    integrator: str
    integrator_fee: str = Field(description="Integrator share, decimal string")
    lifi_fee: str = Field(description="Protocol share, decimal string")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("integrator_fee", "lifi_fee", mode="before")
    @classmethod
    def _normalize_amount(cls, value: Any) -> Any:
        return _to_decimal_string(value)


class FeeEvent(FeeCollectedEvent):
    """Stored fee event."""

    chain_id: int
    created_at: datetime | None = None


__all__ = [
    "BlockJob",
    "BlockRange",
    "FeeCollectedEvent",
    "FeeEvent",
    "JobStatus",
]
