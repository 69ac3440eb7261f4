"""
30-minute meetup reminders.

Approved participants of a meetup that starts within the next 30 minutes
get one reminder. A meetup counts as reminded as soon as any
meetup_reminder_30min notification exists for it.
"""

import logging
from datetime import datetime

import sentry_sdk
from sqlalchemy import select

from ..constants import REMINDER_LEAD_TIME
from ..database import get_connection
from ..enums import PRE_START_STATUSES, NotificationType
from ..notifications.dispatcher import notify_many
from ..notifications.templates import get_title_and_body
from ..queries.participants import get_participant_ids
from ..tables import meetup_starts_at, meetups
from ..timezone import local_now
from .guards import claim_meetup_notification, not_yet_notified

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = NotificationType.meetup_reminder_30min


def eligible_meetups_query(now: datetime):
    """Meetups starting in (now, now + 30min] that have not been reminded."""
    starts_at = meetup_starts_at()
    return (
        select(meetups.c.meetup_id, meetups.c.title, meetups.c.location)
        .where(meetups.c.status.in_(list(PRE_START_STATUSES)))
        .where(starts_at > now)
        .where(starts_at <= now + REMINDER_LEAD_TIME)
        .where(not_yet_notified(NOTIFICATION_TYPE))
        .order_by(starts_at, meetups.c.meetup_id)
    )


async def remind_meetup(meetup: dict) -> int:
    """
    Send the reminder for one meetup.

    A meetup without approved participants is skipped without recording
    anything, so it stays eligible for as long as it is in the window.
    The meetup row is locked while the reminder rows are written, so
    concurrent runs cannot both send it.

    Returns:
        Number of notifications created
    """
    meetup_id = meetup["meetup_id"]

    async with get_connection() as conn:
        user_ids = await get_participant_ids(conn, meetup_id)

    if not user_ids:
        return 0

    title, body = get_title_and_body(
        NOTIFICATION_TYPE,
        {"title": meetup["title"], "location": meetup["location"] or ""},
    )
    # Another run may have reminded it since the eligibility query
    return await notify_many(
        user_ids,
        NOTIFICATION_TYPE,
        title,
        body,
        meetup_id,
        guard=lambda conn: claim_meetup_notification(conn, meetup_id, NOTIFICATION_TYPE),
    )


async def run(now: datetime | None = None) -> dict:
    """
    Remind participants of every eligible meetup.

    A failure for one meetup is logged and does not affect the others.

    Returns:
        {"meetups": reminded meetup count, "notifications": rows created}
    """
    now = now or local_now()

    async with get_connection() as conn:
        result = await conn.execute(eligible_meetups_query(now))
        eligible = [dict(row) for row in result.mappings().all()]

    reminded = 0
    created = 0
    for meetup in eligible:
        try:
            count = await remind_meetup(meetup)
        except Exception as e:
            logger.error(f"Failed to send reminder for meetup {meetup['meetup_id']}: {e}")
            sentry_sdk.capture_exception(e)
            continue
        if count:
            reminded += 1
            created += count

    if reminded:
        logger.info(f"Sent {created} reminders for {reminded} meetups")

    return {"meetups": reminded, "notifications": created}
