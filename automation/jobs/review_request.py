"""
Review prompts after a meetup.

A meetup is eligible once its assumed end (start + 3h) has passed, until
start + 5h falls more than 24 hours in the past. Participants who were
approved or completed get the prompt, plus the host.
"""

import logging
from datetime import datetime

import sentry_sdk
from sqlalchemy import select

from ..constants import MEETUP_DURATION, REVIEW_LOOKBACK, REVIEW_WINDOW_END
from ..database import get_connection
from ..enums import (
    REVIEWABLE_MEETUP_STATUSES,
    REVIEWER_PARTICIPANT_STATUSES,
    NotificationType,
)
from ..notifications.dispatcher import notify_many
from ..notifications.templates import get_title_and_body
from ..queries.participants import get_participant_ids
from ..tables import meetup_starts_at, meetups
from ..timezone import local_now
from .guards import claim_meetup_notification, not_yet_notified

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = NotificationType.review_request


def eligible_meetups_query(now: datetime):
    starts_at = meetup_starts_at()
    return (
        select(meetups.c.meetup_id, meetups.c.title, meetups.c.host_id)
        .where(meetups.c.status.in_(list(REVIEWABLE_MEETUP_STATUSES)))
        .where(starts_at < now - MEETUP_DURATION)
        .where(starts_at > now - REVIEW_LOOKBACK - REVIEW_WINDOW_END)
        .where(not_yet_notified(NOTIFICATION_TYPE))
        .order_by(starts_at, meetups.c.meetup_id)
    )


def review_recipients(participant_ids: list[int], host_id: int | None) -> list[int]:
    """
    Participants plus the host.

    No participants means nobody to review, so the host alone gets nothing.
    """
    if not participant_ids:
        return []
    recipients = list(participant_ids)
    if host_id is not None and host_id not in recipients:
        recipients.append(host_id)
    return recipients


async def request_reviews(meetup: dict) -> int:
    """Send review prompts for one meetup. Returns notifications created."""
    meetup_id = meetup["meetup_id"]

    async with get_connection() as conn:
        participant_ids = await get_participant_ids(
            conn, meetup_id, REVIEWER_PARTICIPANT_STATUSES
        )

    recipients = review_recipients(participant_ids, meetup["host_id"])
    if not recipients:
        return 0

    title, body = get_title_and_body(NOTIFICATION_TYPE, {"title": meetup["title"]})
    return await notify_many(
        recipients,
        NOTIFICATION_TYPE,
        title,
        body,
        meetup_id,
        guard=lambda conn: claim_meetup_notification(conn, meetup_id, NOTIFICATION_TYPE),
    )


async def run(now: datetime | None = None) -> dict:
    """
    Send review prompts for every eligible meetup.

    Returns:
        {"meetups": prompted meetup count, "notifications": rows created}
    """
    now = now or local_now()

    async with get_connection() as conn:
        result = await conn.execute(eligible_meetups_query(now))
        eligible = [dict(row) for row in result.mappings().all()]

    prompted = 0
    created = 0
    for meetup in eligible:
        try:
            count = await request_reviews(meetup)
        except Exception as e:
            logger.error(
                f"Failed to send review request for meetup {meetup['meetup_id']}: {e}"
            )
            sentry_sdk.capture_exception(e)
            continue
        if count:
            prompted += 1
            created += count

    if prompted:
        logger.info(f"Sent {created} review requests for {prompted} meetups")

    return {"meetups": prompted, "notifications": created}
