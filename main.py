"""
Meetup automation service entry point.

Architecture:
- One Python process, one asyncio event loop
- A Scheduler with four interval triggers (reminders, status transitions,
  review requests, no-show processing)
- Push delivery runs as background tasks on the same loop

Run with: python main.py [--run JOB] [--list-jobs]
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
project_root = Path(__file__).parent
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk

from automation.config import (
    get_log_level,
    get_missing_env_vars,
    get_sentry_dsn,
    is_dev_mode,
    is_scheduler_enabled,
)
from automation.database import close_engine
from automation.notifications.dispatcher import wait_for_pending_pushes
from automation.scheduler import JOB_CONFIG, Scheduler

logger = logging.getLogger("automation")

# How long shutdown waits for running jobs and pending pushes
SHUTDOWN_TIMEOUT_SECONDS = 30


def configure_logging() -> None:
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def init_sentry() -> None:
    dsn = get_sentry_dsn()
    if not dsn:
        return
    sentry_sdk.init(
        dsn=dsn,
        environment="development" if is_dev_mode() else "production",
        traces_sample_rate=0.0,
    )
    logger.info("Sentry error reporting enabled")


def check_environment() -> None:
    """Log missing settings; exit if a fatal one is missing."""
    fatal = False
    for name, description, is_fatal in get_missing_env_vars():
        if is_fatal:
            logger.error(f"{name} is not set ({description})")
            fatal = True
        else:
            logger.warning(f"{name} is not set ({description})")
    if fatal:
        sys.exit(1)


async def shutdown(scheduler: Scheduler) -> None:
    """Stop triggers, let in-flight work finish, release the database pool."""
    scheduler.stop()
    if not await scheduler.wait_idle(timeout=SHUTDOWN_TIMEOUT_SECONDS):
        logger.warning("Some jobs were still running at shutdown")
    remaining = await wait_for_pending_pushes(timeout=SHUTDOWN_TIMEOUT_SECONDS)
    if remaining:
        logger.warning(f"{remaining} push deliveries still pending at shutdown")
    await close_engine()


async def run_forever() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    if not is_scheduler_enabled():
        logger.info("Scheduler disabled (DISABLE_SCHEDULER=true), exiting")
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    scheduler = Scheduler()
    scheduler.start()
    try:
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await shutdown(scheduler)


async def run_job(name: str) -> None:
    """Run a single job once (operations and backfills)."""
    scheduler = Scheduler()
    try:
        result = await scheduler.run_once(name)
        logger.info(f"{name}: {result}")
        await wait_for_pending_pushes(timeout=SHUTDOWN_TIMEOUT_SECONDS)
    finally:
        await close_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description="Meetup automation scheduler")
    parser.add_argument(
        "--run",
        metavar="JOB",
        choices=sorted(JOB_CONFIG),
        help="Run one job once and exit",
    )
    parser.add_argument(
        "--list-jobs",
        action="store_true",
        help="List the scheduled jobs and their intervals",
    )
    args = parser.parse_args()

    if args.list_jobs:
        for job in JOB_CONFIG.values():
            print(f"{job.name:<20} every {job.interval_seconds:>5}s  {job.description}")
        return

    configure_logging()
    init_sentry()
    check_environment()

    if args.run:
        asyncio.run(run_job(args.run))
    else:
        asyncio.run(run_forever())


if __name__ == "__main__":
    main()
