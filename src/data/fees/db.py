"""Database models for fee collection."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    DateTime,
    Identity,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.data.fees.models import JobStatus
from src.helpers.db import Base


class BlockCursorDB(Base):
    """Per-chain watermark: the next block not yet allocated to a job."""

    __tablename__ = "block_cursors"

    chain_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class BlockJobDB(Base):
    """Leased block range being processed by a worker."""

    __tablename__ = "block_jobs"
    __table_args__ = (
        UniqueConstraint("chain_id", "from_block", name="uq_block_jobs_chain_from"),
        Index("ix_block_jobs_chain_status", "chain_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    chain_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    from_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    to_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=JobStatus.PROCESSING.value
    )
    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class FeeEventDB(Base):
    """FeesCollected event, one row per (transaction, log index)."""

    __tablename__ = "fee_events"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash", "log_index", name="uq_fee_events_tx_log"
        ),
        Index("ix_fee_events_chain_block_log", "chain_id", "block_number", "log_index"),
    )

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    chain_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    token: Mapped[str] = mapped_column(String(42), nullable=False)
    integrator: Mapped[str] = mapped_column(String(42), nullable=False)
    integrator_fee: Mapped[Decimal] = mapped_column(
        Numeric(78, 0), nullable=False, doc="Token base units"
    )
    lifi_fee: Mapped[Decimal] = mapped_column(
        Numeric(78, 0), nullable=False, doc="Token base units"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
