"""Fee collector worker.

Runs collection cycles for the configured chain until stopped. Any number of
workers may run against the same database; they coordinate only through the
block cursor and the job table.

Startup (fatal on failure):
1. Create tables
2. Verify the RPC endpoint serves ACTIVE_CHAIN and the contract is deployed
3. Seed the chain cursor at START_POINT

Then loop: collect, idle for the mode's poll interval, repeat.

Usage:
    python -m src.worker
"""

import os
import signal
import socket
import sys

import asyncio
from asyncio import sleep

from src.data.fees.collector import Collector
from src.data.fees.mode import INITIAL_MODE, poll_interval
from src.helpers.config import load_chain_settings, load_collector_settings
from src.helpers.db import create_tables, dispose_engine
from src.helpers.logging import get_logger


logger = get_logger(__name__)


def default_worker_id() -> str:
    """Identity of this process, unique across hosts."""
    return f"{socket.gethostname()}-{os.getpid()}"


class Worker:
    """Drives a Collector in a loop with mode-dependent idle times."""

    def __init__(self, collector: Collector) -> None:
        """Initialize the worker.

        Args:
            collector: Collector running the cycles
        """
        self.collector = collector
        self.worker_id = collector.worker_id
        self.mode = INITIAL_MODE
        self.should_shutdown = False

    def shutdown(self) -> None:
        """Stop after the current idle period."""
        logger.info("[%s] Shutdown signal received, stopping...", self.worker_id)
        self.should_shutdown = True

    async def start(self) -> None:
        """Prepare storage and check the chain before collecting."""
        await create_tables()
        await self.collector.verify_connection()
        await self.collector.seed_cursor()
        logger.info("[%s] is started.", self.worker_id)

    async def run_once(self) -> bool:
        """Run one cycle and idle afterwards.

        Returns:
            Whether the cycle did any work
        """
        outcome = await self.collector.collect(self.mode)
        self.mode = outcome.mode

        if not outcome.work_done:
            logger.info("[%s] Nothing to do this iteration.", self.worker_id)

        interval = poll_interval(self.mode, self.collector.settings)
        logger.info(
            "[%s] Idle for %.1fs (%s mode)", self.worker_id, interval, self.mode
        )
        await sleep(interval)
        return outcome.work_done

    async def run(self) -> None:
        """Start, then collect until a shutdown signal arrives."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)

        try:
            await self.start()
            while not self.should_shutdown:
                await self.run_once()
        finally:
            await self.collector.aclose()
            await dispose_engine()

        logger.info("[%s] Worker stopped", self.worker_id)


async def main() -> None:
    """Main entry point."""
    worker_id = default_worker_id()
    try:
        collector = Collector(
            worker_id,
            load_chain_settings(),
            load_collector_settings(),
        )
        await Worker(collector).run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception:
        logger.exception("[%s] Critical error, shutting down.", worker_id)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
