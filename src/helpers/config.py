"""Configuration management and environment variable utilities."""

import os

from pydantic import BaseModel, Field, ValidationError

from dotenv import load_dotenv

from src.helpers.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_HISTORICAL_POLL_INTERVAL,
    DEFAULT_JOB_LEASE_TTL,
    DEFAULT_REALTIME_POLL_INTERVAL,
)


# Load environment variables from .env file
load_dotenv()


class CollectorSettings(BaseModel):
    """Tunables of the collection loop."""

    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    job_lease_ttl: float = Field(default=DEFAULT_JOB_LEASE_TTL, gt=0)
    historical_poll_interval: float = Field(
        default=DEFAULT_HISTORICAL_POLL_INTERVAL, ge=0
    )
    realtime_poll_interval: float = Field(default=DEFAULT_REALTIME_POLL_INTERVAL, ge=0)


class ChainSettings(BaseModel):
    """Chain the worker indexes and where to read it from."""

    chain_id: int = Field(gt=0)
    rpc_url: str = Field(min_length=1)
    contract_address: str = Field(pattern=r"^0x[0-9a-fA-F]{40}$")
    start_point: int = Field(ge=0)


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from src.helpers.config import get_required_env

        rpc_url = get_required_env("RPC_URL")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default

    Example:
        ```python
        from src.helpers.config import get_optional_env

        batch_size = int(get_optional_env("BATCH_SIZE", "100"))
        ```
    """
    return os.getenv(key, default)


def get_int_env(key: str, default: int | None = None) -> int:
    """Get an environment variable parsed as an integer.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset; required if None

    Returns:
        Parsed integer

    Raises:
        ValueError: If the variable is missing without default or not an integer
    """
    raw = os.getenv(key)
    if not raw:
        if default is None:
            msg = f"{key} environment variable is not set"
            raise ValueError(msg)
        return default

    try:
        return int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ValueError(msg) from None


def get_float_env(key: str, default: float) -> float:
    """Get an optional environment variable parsed as a float.

    Raises:
        ValueError: If the variable is set but not a number
    """
    raw = os.getenv(key)
    if not raw:
        return default

    try:
        return float(raw)
    except ValueError:
        msg = f"{key} must be a number, got {raw!r}"
        raise ValueError(msg) from None


def load_collector_settings() -> CollectorSettings:
    """Build collector settings from the environment.

    Returns:
        Validated CollectorSettings

    Raises:
        ValueError: If a variable is malformed or out of range
    """
    try:
        return CollectorSettings(
            batch_size=get_int_env("BATCH_SIZE", DEFAULT_BATCH_SIZE),
            job_lease_ttl=get_float_env(
                "JOB_LEASE_TTL_SECONDS", DEFAULT_JOB_LEASE_TTL
            ),
            historical_poll_interval=get_float_env(
                "HISTORICAL_POLL_INTERVAL_SECONDS", DEFAULT_HISTORICAL_POLL_INTERVAL
            ),
            realtime_poll_interval=get_float_env(
                "REALTIME_POLL_INTERVAL_SECONDS", DEFAULT_REALTIME_POLL_INTERVAL
            ),
        )
    except ValidationError as e:
        msg = f"Invalid collector settings: {e}"
        raise ValueError(msg) from e


def load_chain_settings() -> ChainSettings:
    """Build chain settings from the environment.

    Returns:
        Validated ChainSettings

    Raises:
        ValueError: If ACTIVE_CHAIN, RPC_URL, CONTRACT_ADDRESS or START_POINT
            is missing or invalid

    Example:
        ```python
        from src.helpers.config import load_chain_settings

        chain = load_chain_settings()
        print(chain.chain_id, chain.start_point)
        ```
    """
    chain_id = get_int_env("ACTIVE_CHAIN")
    rpc_url = get_required_env("RPC_URL")
    contract_address = get_required_env("CONTRACT_ADDRESS")
    start_point = get_int_env("START_POINT")

    try:
        return ChainSettings(
            chain_id=chain_id,
            rpc_url=rpc_url,
            contract_address=contract_address,
            start_point=start_point,
        )
    except ValidationError as e:
        msg = f"Invalid chain config for chain id {chain_id}: {e}"
        raise ValueError(msg) from e


__all__ = [
    "ChainSettings",
    "CollectorSettings",
    "get_float_env",
    "get_int_env",
    "get_optional_env",
    "get_required_env",
    "load_chain_settings",
    "load_collector_settings",
]
