"""
Meetup status transitions driven by wall-clock time.

    recruiting | recruiting_complete --(start reached)--> in_progress
    in_progress --(start + 3h reached)--> ended

Each transition is one conditional bulk UPDATE, so re-running is a no-op
and a meetup missed while the service was down is caught up on the next run.
"""

import logging
from datetime import datetime

from sqlalchemy import func, update

from ..constants import MEETUP_DURATION
from ..database import get_transaction
from ..enums import PRE_START_STATUSES, MeetupStatus
from ..tables import meetup_starts_at, meetups
from ..timezone import local_now

logger = logging.getLogger(__name__)


def start_meetups_statement(now: datetime):
    """Move meetups that have reached their start time to in_progress."""
    return (
        update(meetups)
        .where(meetups.c.status.in_(list(PRE_START_STATUSES)))
        .where(meetup_starts_at() <= now)
        .values(status=MeetupStatus.in_progress, updated_at=func.now())
        .returning(meetups.c.meetup_id, meetups.c.title)
    )


def end_meetups_statement(now: datetime):
    """Move in-progress meetups whose assumed duration has elapsed to ended."""
    return (
        update(meetups)
        .where(meetups.c.status == MeetupStatus.in_progress)
        .where(meetup_starts_at() <= now - MEETUP_DURATION)
        .values(status=MeetupStatus.ended, updated_at=func.now())
        .returning(meetups.c.meetup_id, meetups.c.title)
    )


async def run(now: datetime | None = None) -> dict:
    """
    Apply both transitions.

    Args:
        now: Local wall-clock time to evaluate against (defaults to local_now())

    Returns:
        {"in_progress": count, "ended": count}
    """
    now = now or local_now()

    async with get_transaction() as conn:
        started = (await conn.execute(start_meetups_statement(now))).mappings().all()
        ended = (await conn.execute(end_meetups_statement(now))).mappings().all()

    for row in started:
        logger.info(f"Meetup {row['meetup_id']} ({row['title']}) is now in progress")
    for row in ended:
        logger.info(f"Meetup {row['meetup_id']} ({row['title']}) has ended")

    return {"in_progress": len(started), "ended": len(ended)}
