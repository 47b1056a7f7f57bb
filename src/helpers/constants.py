"""Common configuration constants used across the application."""

# Collector Defaults
DEFAULT_BATCH_SIZE = 100
"""Default number of blocks claimed per range"""

DEFAULT_JOB_LEASE_TTL = 120.0
"""Default job lease length in seconds"""

DEFAULT_HISTORICAL_POLL_INTERVAL = 5.0
"""Idle time between cycles while draining the backlog, in seconds"""

DEFAULT_REALTIME_POLL_INTERVAL = 60.0
"""Idle time between cycles once caught up with the chain tip, in seconds"""

# Job Queue
MAX_JOB_ATTEMPTS = 10
"""Attempts after which a job is no longer reclaimed (dead-lettered)"""

MAX_JOB_ERROR_LENGTH = 2_000
"""Maximum number of characters of an error message stored on a job"""

# Mode Switching
REALTIME_LAG_FACTOR = 1
"""Enter realtime mode when lag is at most this many batches"""

HISTORICAL_LAG_FACTOR = 5
"""Return to historical mode when lag is at least this many batches"""

# Store Retry Configuration
STORE_RETRY_ATTEMPTS = 3
"""Default number of attempts for a store operation"""

STORE_RETRY_DELAY = 2.0
"""Linear backoff step between store retries in seconds"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

# Database Limits
POSTGRES_PARAM_LIMIT = 65_535
"""PostgreSQL's parameter limit for prepared statements"""

# Query Defaults
DEFAULT_CHAIN_ID = 137
"""Chain queried when no chain id is given (Polygon mainnet)"""

DEFAULT_PAGE = 1
"""First page number"""

DEFAULT_LIMIT = 20
"""Default page size"""

MIN_LIMIT = 1
"""Smallest accepted page size"""

MAX_LIMIT = 100
"""Largest accepted page size"""


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CHAIN_ID",
    "DEFAULT_HISTORICAL_POLL_INTERVAL",
    "DEFAULT_JOB_LEASE_TTL",
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "DEFAULT_REALTIME_POLL_INTERVAL",
    "DEFAULT_TIMEOUT",
    "HISTORICAL_LAG_FACTOR",
    "MAX_JOB_ATTEMPTS",
    "MAX_JOB_ERROR_LENGTH",
    "MAX_LIMIT",
    "MIN_LIMIT",
    "POSTGRES_PARAM_LIMIT",
    "REALTIME_LAG_FACTOR",
    "STORE_RETRY_ATTEMPTS",
    "STORE_RETRY_DELAY",
]
