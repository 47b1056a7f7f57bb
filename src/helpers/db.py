"""Database connection helpers."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from dotenv import load_dotenv

from src.helpers.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import AsyncIterator


# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)

Base = declarative_base()

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_database_url() -> str:
    """Get the database URL from environment variables.

    Returns:
        str: PostgreSQL database URL

    Raises:
        ValueError: If required environment variables are not set
    """
    postgre_host = os.getenv("POSTGRE_HOST")
    if not postgre_host:
        msg = "POSTGRE_HOST is not set"
        raise ValueError(msg)

    postgre_port = os.getenv("POSTGRE_PORT", "5432")

    postgre_user = os.getenv("POSTGRE_USER")
    if not postgre_user:
        msg = "POSTGRE_USER is not set"
        raise ValueError(msg)

    postgre_password = os.getenv("POSTGRE_PASSWORD")
    if not postgre_password:
        msg = "POSTGRE_PASSWORD is not set"
        raise ValueError(msg)

    postgre_db = os.getenv("POSTGRE_DB")
    if not postgre_db:
        msg = "POSTGRE_DB is not set"
        raise ValueError(msg)

    # Use psycopg (version 3) as the async PostgreSQL driver
    return (
        "postgresql+psycopg://"
        f"{postgre_user}:{postgre_password}"
        f"@{postgre_host}:{postgre_port}"
        f"/{postgre_db}"
    )


def configure_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine and session factory.

    Args:
        database_url: Explicit URL; read from the environment when omitted

    Returns:
        The newly created engine
    """
    global _engine, _session_factory  # noqa: PLW0603

    _engine = create_async_engine(
        database_url or get_database_url(),
        echo=False,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    """Return the shared engine, creating it on first use."""
    if _engine is None:
        return configure_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the shared session factory, creating it on first use."""
    if _session_factory is None:
        configure_engine()
    assert _session_factory is not None  # Set by configure_engine
    return _session_factory


@asynccontextmanager
async def session_scope(
    session: AsyncSession | None = None,
) -> AsyncIterator[AsyncSession]:
    """Run a unit of work and commit it, rolling back on error.

    Args:
        session: Session to use; a new one from the shared factory otherwise

    Yields:
        AsyncSession: The session to execute statements on

    Example:
        ```python
        async with session_scope() as session:
            await session.execute(stmt)
        ```
    """
    if session is not None:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return

    async with get_session_factory()() as owned_session:
        try:
            yield owned_session
            await owned_session.commit()
        except Exception:
            await owned_session.rollback()
            raise


async def check_connection() -> bool:
    """Check the database with a trivial query.

    Returns:
        True if the database answered, False otherwise
    """
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return False
    return True


async def reconnect() -> None:
    """Drop every pooled connection and build a fresh engine."""
    global _engine  # noqa: PLW0603

    url = None
    if _engine is not None:
        url = _engine.url.render_as_string(hide_password=False)
        await _engine.dispose()
        _engine = None

    configure_engine(url)
    logger.info("Database engine recreated")


async def create_tables() -> None:
    """Create database tables if they don't exist."""
    # Register every model on Base.metadata
    import src.data.fees.db  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all pooled connections."""
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "Base",
    "check_connection",
    "configure_engine",
    "create_tables",
    "dispose_engine",
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "reconnect",
    "session_scope",
]
