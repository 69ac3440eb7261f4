"""
Idempotency guards shared by the scheduled jobs.

A job never remembers what it processed. Instead, each eligibility query
excludes meetups whose side effect already exists in the database:
a notification of the job's type for that meetup, or a participant
already flagged as a no-show. The same predicates are available as
standalone checks for re-verifying a single meetup right before acting.
"""

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import NotificationType
from ..tables import meetup_participants, meetups, notifications


def not_yet_notified(notification_type: NotificationType):
    """
    WHERE clause: no notification of this type exists for the meetup.

    Correlates against ``meetups``; one row for any recipient is enough
    to mark the whole meetup as handled.
    """
    return ~exists().where(
        notifications.c.type == notification_type.value,
        notifications.c.meetup_id == meetups.c.meetup_id,
    )


def no_show_not_recorded():
    """WHERE clause: no participant of the meetup is flagged as a no-show."""
    return ~exists().where(
        meetup_participants.c.meetup_id == meetups.c.meetup_id,
        meetup_participants.c.no_show.is_(True),
    )


async def was_meetup_notified(
    conn: AsyncConnection,
    meetup_id: int,
    notification_type: NotificationType,
) -> bool:
    """Check whether a notification of this type already exists for a meetup."""
    result = await conn.execute(
        select(
            exists().where(
                notifications.c.type == notification_type.value,
                notifications.c.meetup_id == meetup_id,
            )
        )
    )
    return bool(result.scalar())


async def has_no_show_record(conn: AsyncConnection, meetup_id: int) -> bool:
    """Check whether any participant of a meetup is already flagged as a no-show."""
    result = await conn.execute(
        select(
            exists().where(
                meetup_participants.c.meetup_id == meetup_id,
                meetup_participants.c.no_show.is_(True),
            )
        )
    )
    return bool(result.scalar())


async def lock_meetup(conn: AsyncConnection, meetup_id: int) -> None:
    """
    Take a row lock on a meetup for the rest of the caller's transaction.

    Concurrent runs acting on the same meetup queue up here, so a guard
    checked after the lock sees whatever the previous holder committed.
    """
    await conn.execute(
        select(meetups.c.meetup_id)
        .where(meetups.c.meetup_id == meetup_id)
        .with_for_update()
    )


async def claim_meetup_notification(
    conn: AsyncConnection,
    meetup_id: int,
    notification_type: NotificationType,
) -> bool:
    """
    Lock the meetup and check that no notification of this type exists yet.

    Must run in the same transaction that inserts the notifications.

    Returns:
        True if the caller may notify
    """
    await lock_meetup(conn, meetup_id)
    return not await was_meetup_notified(conn, meetup_id, notification_type)
