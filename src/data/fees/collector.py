"""Fee event collector.

One call to Collector.collect() runs a single ingestion cycle:

1. Claim a job: reclaim a failed or lease-expired job, otherwise allocate a
   fresh range below the chain tip and create a job for it
2. Load FeesCollected logs for the job's range
3. Decode them into fee events
4. Upsert the events
5. Mark the job completed

A failure after a job was claimed is recorded on the job, which another cycle
(of any worker) picks up again. The collector keeps no mode state of its own:
the caller passes the current mode in and gets the next one back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from src.data.fees.cursor import seed_cursor
from src.data.fees.events import upsert_fee_events
from src.data.fees.jobs import (
    DuplicateRangeError,
    claim_expired_or_failed,
    count_exhausted_jobs,
    create_next_job,
    mark_completed,
    mark_failed,
)
from src.data.fees.mode import CollectorMode, next_mode
from src.data.fees.rpc import FeeCollectorReader
from src.helpers.constants import MAX_JOB_ATTEMPTS
from src.helpers.logging import get_logger
from src.helpers.retry import with_retry


if TYPE_CHECKING:
    from src.data.fees.models import BlockJob
    from src.helpers.config import ChainSettings, CollectorSettings


logger = get_logger(__name__)


class CycleOutcome(NamedTuple):
    """Result of one collection cycle."""

    work_done: bool
    mode: CollectorMode


class Collector:
    """Runs ingestion cycles for one chain on behalf of one worker."""

    def __init__(
        self,
        worker_id: str,
        chain: ChainSettings,
        settings: CollectorSettings,
        reader: FeeCollectorReader | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            worker_id: Identity recorded as lease owner
            chain: Chain, RPC endpoint and contract to index
            settings: Batch size, lease length and poll intervals
            reader: Chain reader; built from chain settings when omitted
        """
        self.worker_id = worker_id
        self.chain = chain
        self.settings = settings
        self.reader = reader or FeeCollectorReader(
            chain.rpc_url, chain.contract_address
        )

        logger.info(
            "[%s] Stage 0: Provisioned chain id %s.", self.worker_id, self.chain_id
        )

    @property
    def chain_id(self) -> int:
        """Chain this collector indexes."""
        return self.chain.chain_id

    async def verify_connection(self) -> None:
        """Fail fast if the RPC endpoint or contract is misconfigured."""
        logger.debug(
            "[%s] Testing connection to chain id %s.", self.worker_id, self.chain_id
        )
        await self.reader.verify_reachable(self.chain_id)

    async def seed_cursor(self) -> None:
        """Create the chain cursor at the configured start point if missing."""
        logger.debug(
            "[%s] Seeding cursor for chain id %s, cursor: %s",
            self.worker_id,
            self.chain_id,
            self.chain.start_point,
        )
        await with_retry(
            lambda: seed_cursor(self.chain_id, self.chain.start_point),
            worker_id=self.worker_id,
        )

    async def collect(self, mode: CollectorMode) -> CycleOutcome:
        """Run one collection cycle.

        Args:
            mode: Current operating mode

        Returns:
            CycleOutcome: work_done is False when there was nothing to do or the
            claimed job failed (the caller should idle); mode is the mode to
            use for the next cycle
        """
        job: BlockJob | None = None

        try:
            logger.info("[%s] Stage 1: Claim the Job.", self.worker_id)

            job, mode = await self._claim_job(mode)
            if job is None:
                await self._warn_exhausted_jobs()
                return CycleOutcome(work_done=False, mode=mode)

            logger.info(
                "[%s] Stage 1: Job claimed successfully. ID: %s",
                self.worker_id,
                job.id,
            )

            logger.info(
                "[%s] Stage 2: Loading Fee Collector Events.", self.worker_id
            )
            raw_events = await self.reader.load_events(job.from_block, job.to_block)
            logger.info(
                "[%s] Stage 2: Completed. Loaded %d Fee Collector Events.",
                self.worker_id,
                len(raw_events),
            )

            logger.info(
                "[%s] Stage 3: Parsing Fee Collector Events.", self.worker_id
            )
            events = self.reader.decode_events(raw_events)
            logger.info(
                "[%s] Stage 3: Completed. Parsed %d Fee Collector Events.",
                self.worker_id,
                len(events),
            )

            logger.info(
                "[%s] Stage 4: Storing Fee Collector Events into database.",
                self.worker_id,
            )
            upserted = await with_retry(
                lambda: upsert_fee_events(self.chain_id, events),
                worker_id=self.worker_id,
            )
            logger.info(
                "[%s] Stage 4: Completed. Upserted %d/%d Fee Collector Events.",
                self.worker_id,
                upserted,
                len(events),
            )

            logger.info("[%s] Stage 5: Marking job completed.", self.worker_id)
            job_id = job.id
            await with_retry(
                lambda: mark_completed(job_id),
                worker_id=self.worker_id,
            )
            logger.info(
                "[%s] Stage 5: Completed. Job %s done.", self.worker_id, job_id
            )

        except DuplicateRangeError:
            logger.critical(
                "[%s] Allocation conflict, range handed out twice",
                self.worker_id,
                exc_info=True,
            )
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.error("[%s] Job failed: %s", self.worker_id, error_msg)

            if job is not None:
                await self._fail_job(job, error_msg)
                return CycleOutcome(work_done=False, mode=mode)

        # A scrape/store attempt was made; on error another cycle retries it
        return CycleOutcome(work_done=True, mode=mode)

    async def _claim_job(
        self, mode: CollectorMode
    ) -> tuple[BlockJob | None, CollectorMode]:
        job = await with_retry(
            lambda: claim_expired_or_failed(
                self.chain_id, self.worker_id, self.settings.job_lease_ttl
            ),
            worker_id=self.worker_id,
        )
        if job is not None:
            logger.debug(
                "[%s] Stage 1: retrying job %s. Block range: [%s..%s] (attempt: %s)",
                self.worker_id,
                job.id,
                job.from_block,
                job.to_block,
                job.attempts,
            )
            return job, mode

        chain_tip = await self.reader.get_chain_tip()
        # Cursor advance and job insert commit together; a failed attempt
        # leaves the cursor where it was
        job = await with_retry(
            lambda: create_next_job(
                self.chain_id,
                self.settings.batch_size,
                chain_tip,
                self.worker_id,
                self.settings.job_lease_ttl,
            ),
            worker_id=self.worker_id,
            give_up_on=(DuplicateRangeError,),
        )
        if job is None:
            logger.debug(
                "[%s] Stage 1: no blocks available below chain tip %s, idle",
                self.worker_id,
                chain_tip,
            )
            return None, self._switch_mode(mode, CollectorMode.REALTIME)

        lag = chain_tip - job.to_block
        mode = self._switch_mode(
            mode, next_mode(mode, lag, self.settings.batch_size)
        )

        logger.debug(
            "[%s] Stage 1: claimed new range [%s..%s], lag %s blocks",
            self.worker_id,
            job.from_block,
            job.to_block,
            lag,
        )
        return job, mode

    def _switch_mode(
        self, current: CollectorMode, target: CollectorMode
    ) -> CollectorMode:
        if current is not target:
            logger.info(
                "[%s] Changing mode from %s to %s.", self.worker_id, current, target
            )
        return target

    async def _fail_job(self, job: BlockJob, error_msg: str) -> None:
        try:
            released = await with_retry(
                lambda: mark_failed(job.id, self.worker_id, error_msg),
                worker_id=self.worker_id,
            )
        except Exception:
            # The lease still expires, so the job is reclaimed later anyway
            logger.exception(
                "[%s] Could not mark job %s failed", self.worker_id, job.id
            )
            return

        if released and job.attempts >= MAX_JOB_ATTEMPTS:
            logger.warning(
                "[%s] Job %s [%s..%s] failed its last attempt and will not be "
                "retried",
                self.worker_id,
                job.id,
                job.from_block,
                job.to_block,
            )
            await self._warn_exhausted_jobs()

    async def _warn_exhausted_jobs(self) -> None:
        try:
            exhausted = await count_exhausted_jobs(self.chain_id)
        except Exception as e:
            logger.warning(
                "[%s] Could not count exhausted jobs: %s", self.worker_id, e
            )
            return

        if exhausted:
            logger.warning(
                "[%s] %d job(s) on chain %s exhausted their attempts and need "
                "operator attention (python -m src.report --chain-id %s)",
                self.worker_id,
                exhausted,
                self.chain_id,
                self.chain_id,
            )

    async def aclose(self) -> None:
        """Release the chain reader's HTTP client."""
        await self.reader.aclose()


__all__ = [
    "Collector",
    "CycleOutcome",
]
