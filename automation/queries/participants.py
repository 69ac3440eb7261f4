"""Database queries for meetup participants."""

from collections.abc import Iterable

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import APPROVED_PARTICIPANT_STATUSES, AttendanceStatus, ParticipantStatus
from ..tables import attendances, meetup_participants, users


async def get_participant_ids(
    conn: AsyncConnection,
    meetup_id: int,
    statuses: Iterable[ParticipantStatus] = APPROVED_PARTICIPANT_STATUSES,
) -> list[int]:
    """Get user_ids of a meetup's participants with one of the given statuses."""
    result = await conn.execute(
        select(meetup_participants.c.user_id)
        .where(meetup_participants.c.meetup_id == meetup_id)
        .where(meetup_participants.c.status.in_(list(statuses)))
        .order_by(meetup_participants.c.participant_id)
    )
    return list(result.scalars().all())


def no_show_candidates_query(meetup_id: int, host_id: int):
    """
    Approved participants (host excluded) who neither were marked as attended
    nor have a confirmed check-in record.
    """
    confirmed_check_in = and_(
        attendances.c.meetup_id == meetup_participants.c.meetup_id,
        attendances.c.user_id == meetup_participants.c.user_id,
        attendances.c.status == AttendanceStatus.confirmed,
    )
    return (
        select(
            meetup_participants.c.user_id,
            users.c.name,
            users.c.trust_score,
        )
        .select_from(
            meetup_participants.join(
                users, meetup_participants.c.user_id == users.c.user_id
            ).outerjoin(attendances, confirmed_check_in)
        )
        .where(meetup_participants.c.meetup_id == meetup_id)
        .where(meetup_participants.c.status.in_(list(APPROVED_PARTICIPANT_STATUSES)))
        .where(func.coalesce(meetup_participants.c.attended, False).is_(False))
        .where(attendances.c.attendance_id.is_(None))
        .where(meetup_participants.c.user_id != host_id)
        .order_by(meetup_participants.c.participant_id)
    )


async def get_no_show_candidates(
    conn: AsyncConnection,
    meetup_id: int,
    host_id: int,
) -> list[dict]:
    """
    Get participants who never checked in to a meetup.

    Returns:
        List of {"user_id", "name", "trust_score"} dicts
    """
    result = await conn.execute(no_show_candidates_query(meetup_id, host_id))
    return [dict(row) for row in result.mappings().all()]


async def mark_no_show(conn: AsyncConnection, meetup_id: int, user_id: int) -> None:
    """Flag a participant as a no-show."""
    await conn.execute(
        update(meetup_participants)
        .where(meetup_participants.c.meetup_id == meetup_id)
        .where(meetup_participants.c.user_id == user_id)
        .values(no_show=True, updated_at=func.now())
    )


async def set_trust_score(conn: AsyncConnection, user_id: int, score: int) -> None:
    """Store a user's new trust score."""
    await conn.execute(
        update(users)
        .where(users.c.user_id == user_id)
        .values(trust_score=score, updated_at=func.now())
    )
