"""
No-show processing.

Once a meetup has ended and another 24 hours have passed, attendance is
final. Approved participants (other than the host) who were neither marked
as attended nor have a confirmed check-in are flagged as no-shows, lose
trust score, and get a personal notice; the host gets one summary.

Each meetup is settled in its own transaction. Pushes for the notifications
written there are only scheduled after the commit.
"""

import logging
from datetime import datetime

import sentry_sdk
from sqlalchemy import select

from ..config import get_noshow_penalty
from ..constants import DEFAULT_TRUST_SCORE, MEETUP_DURATION, NOSHOW_SETTLE_DELAY
from ..database import get_connection, get_transaction
from ..enums import MeetupStatus, NotificationType
from ..notifications.dispatcher import (
    PendingPush,
    build_push_data,
    insert_notifications,
    schedule_push,
)
from ..notifications.templates import get_title_and_body
from ..queries.participants import get_no_show_candidates, mark_no_show, set_trust_score
from ..tables import meetup_starts_at, meetups
from ..timezone import local_now
from .guards import has_no_show_record, lock_meetup, no_show_not_recorded

logger = logging.getLogger(__name__)


def eligible_meetups_query(now: datetime):
    """Ended meetups whose end is more than a day ago and that were not settled yet."""
    starts_at = meetup_starts_at()
    return (
        select(meetups.c.meetup_id, meetups.c.title, meetups.c.host_id)
        .where(meetups.c.status == MeetupStatus.ended)
        .where(starts_at < now - MEETUP_DURATION - NOSHOW_SETTLE_DELAY)
        .where(no_show_not_recorded())
        .order_by(starts_at, meetups.c.meetup_id)
    )


def apply_trust_penalty(score: int | None, penalty: int) -> int:
    """New trust score after a no-show, never below 0."""
    current = DEFAULT_TRUST_SCORE if score is None else score
    return max(current - penalty, 0)


async def settle_meetup(meetup: dict, penalty: int) -> list[PendingPush]:
    """
    Record the no-shows of one meetup atomically.

    Returns:
        Pushes to send once the transaction has committed (empty if nobody
        no-showed or the meetup was settled concurrently)
    """
    meetup_id = meetup["meetup_id"]
    host_id = meetup["host_id"]
    pushes: list[PendingPush] = []

    async with get_transaction() as conn:
        await lock_meetup(conn, meetup_id)
        if await has_no_show_record(conn, meetup_id):
            return []

        no_shows = await get_no_show_candidates(conn, meetup_id, host_id)
        if not no_shows:
            return []

        penalty_type = NotificationType.noshow_penalty
        penalty_data = build_push_data(penalty_type, meetup_id)
        title, body = get_title_and_body(
            penalty_type, {"title": meetup["title"], "penalty": penalty}
        )

        for participant in no_shows:
            user_id = participant["user_id"]
            await mark_no_show(conn, meetup_id, user_id)
            await set_trust_score(
                conn, user_id, apply_trust_penalty(participant["trust_score"], penalty)
            )
            await insert_notifications(
                conn, [user_id], penalty_type, title, body, meetup_id, penalty_data
            )
            pushes.append(PendingPush([user_id], title, body, penalty_data))

        report_type = NotificationType.noshow_report
        report_data = build_push_data(report_type, meetup_id)
        report_title, report_body = get_title_and_body(
            report_type,
            {
                "title": meetup["title"],
                "count": len(no_shows),
                "names": ", ".join(p["name"] for p in no_shows),
            },
        )
        await insert_notifications(
            conn, [host_id], report_type, report_title, report_body, meetup_id, report_data
        )
        pushes.append(PendingPush([host_id], report_title, report_body, report_data))

    logger.info(
        f"Meetup {meetup_id}: recorded {len(no_shows)} no-shows "
        f"(-{penalty} trust each)"
    )
    return pushes


async def run(now: datetime | None = None) -> dict:
    """
    Settle every eligible meetup.

    A meetup whose transaction fails is rolled back, logged, and retried on
    the next run; the remaining meetups are processed normally.

    Returns:
        {"meetups": settled meetups with no-shows, "no_shows": participants flagged}
    """
    now = now or local_now()
    penalty = get_noshow_penalty()

    async with get_connection() as conn:
        result = await conn.execute(eligible_meetups_query(now))
        eligible = [dict(row) for row in result.mappings().all()]

    settled = 0
    flagged = 0
    for meetup in eligible:
        try:
            pushes = await settle_meetup(meetup, penalty)
        except Exception as e:
            logger.error(f"Failed to process no-shows for meetup {meetup['meetup_id']}: {e}")
            sentry_sdk.capture_exception(e)
            continue

        if pushes:
            settled += 1
            # Every push except the host report is one no-show
            flagged += len(pushes) - 1
        for push in pushes:
            schedule_push(push)

    return {"meetups": settled, "no_shows": flagged}
