"""Operator report for jobs that exhausted their attempts.

Usage:
    python -m src.report --chain-id 137
    python -m src.report --chain-id 137 --requeue 42
"""

import argparse

import asyncio

from rich.console import Console
from rich.table import Table

from src.data.fees.cursor import get_cursor
from src.data.fees.jobs import find_exhausted_jobs, requeue_job
from src.data.fees.models import BlockJob
from src.helpers.config import get_optional_env
from src.helpers.constants import MAX_JOB_ATTEMPTS
from src.helpers.db import dispose_engine


def build_exhausted_table(chain_id: int, jobs: list[BlockJob]) -> Table:
    """Render exhausted jobs as a rich table."""
    table = Table(
        title=f"Exhausted jobs on chain {chain_id} (max attempts {MAX_JOB_ATTEMPTS})"
    )
    table.add_column("ID", justify="right")
    table.add_column("From", justify="right")
    table.add_column("To", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Updated")
    table.add_column("Last error", overflow="fold")

    for job in jobs:
        table.add_row(
            str(job.id),
            str(job.from_block),
            str(job.to_block),
            str(job.attempts),
            job.updated_at.isoformat(timespec="seconds"),
            job.error or "",
        )
    return table


async def report(chain_id: int, console: Console) -> int:
    """Print the cursor position and exhausted jobs of a chain.

    Returns:
        Number of exhausted jobs
    """
    cursor = await get_cursor(chain_id)
    if cursor is None:
        console.print(f"[yellow]Chain {chain_id} has no cursor yet[/yellow]")
    else:
        console.print(f"Chain {chain_id}: next unallocated block [bold]{cursor}[/bold]")

    jobs = await find_exhausted_jobs(chain_id)
    if not jobs:
        console.print("[green]No exhausted jobs[/green]")
        return 0

    console.print(build_exhausted_table(chain_id, jobs))
    return len(jobs)


async def requeue(job_id: int, console: Console) -> bool:
    """Reset an exhausted job so workers pick it up again."""
    if await requeue_job(job_id):
        console.print(f"[green]Job {job_id} requeued[/green]")
        return True

    console.print(f"[red]Job {job_id} not found or not exhausted[/red]")
    return False


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    active_chain = get_optional_env("ACTIVE_CHAIN")
    parser.add_argument(
        "--chain-id",
        type=int,
        default=active_chain,
        required=active_chain is None,
        help="Chain to inspect (default: ACTIVE_CHAIN)",
    )
    parser.add_argument(
        "--requeue",
        type=int,
        metavar="JOB_ID",
        help="Reset the attempt budget of an exhausted job",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    args = parse_args(argv)
    console = Console()
    try:
        if args.requeue is not None:
            return 0 if await requeue(args.requeue, console) else 1
        await report(args.chain_id, console)
        return 0
    finally:
        await dispose_engine()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
