"""
Notification dispatcher - persists inbox notifications and hands them to push.

Rows are written in one multi-row INSERT per call. Push delivery is
fire-and-forget: it runs as a background task after the rows are committed,
so callers get the persisted count back immediately and never see push
errors. The dispatcher does not deduplicate by itself: callers pass a guard
that runs inside the insert transaction (see automation.jobs.guards).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from automation.database import get_transaction
from automation.enums import NotificationType
from automation.notifications.channels.push import send_push
from automation.tables import notifications

logger = logging.getLogger(__name__)

# Strong references to in-flight push tasks (the event loop only keeps weak ones)
_push_tasks: set[asyncio.Task] = set()


@dataclass
class PendingPush:
    """Push content held back until the surrounding transaction commits."""

    user_ids: list[int]
    title: str
    body: str
    data: dict = field(default_factory=dict)


def build_push_data(notification_type: NotificationType, meetup_id: int | None) -> dict:
    """Payload stored on the notification row and sent with the push."""
    data = {"type": notification_type.value}
    if meetup_id is not None:
        data["meetupId"] = str(meetup_id)
    return data


async def insert_notifications(
    conn: AsyncConnection,
    user_ids: list[int],
    notification_type: NotificationType,
    title: str,
    body: str,
    meetup_id: int | None = None,
    data: dict | None = None,
) -> int:
    """
    Insert one notification row per recipient in a single statement.

    Runs on the caller's connection so it can take part in a larger
    transaction. Does not trigger push delivery.

    Returns:
        Number of rows written
    """
    if not user_ids:
        return 0

    rows = [
        {
            "user_id": user_id,
            "type": notification_type.value,
            "title": title,
            "message": body,
            "meetup_id": meetup_id,
            "data": data,
            "is_read": False,
        }
        for user_id in user_ids
    ]
    await conn.execute(insert(notifications).values(rows))
    return len(rows)


async def notify_many(
    user_ids: list[int],
    notification_type: NotificationType,
    title: str,
    body: str,
    meetup_id: int | None = None,
    guard: Callable[[AsyncConnection], Awaitable[bool]] | None = None,
) -> int:
    """
    Notify a group of users: persist their notifications, then push.

    All rows are committed together or not at all. Push delivery is
    scheduled only after the commit and its outcome is not reported back.
    When a guard is given it runs first in the same transaction; if it
    returns False nothing is written or pushed.

    Args:
        user_ids: Recipients (duplicates are ignored)
        notification_type: Kind of notification
        title: Notification title
        body: Notification body
        meetup_id: Meetup the notification is about, if any
        guard: Check run on the insert transaction before writing

    Returns:
        Number of notifications created
    """
    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return 0

    data = build_push_data(notification_type, meetup_id)
    async with get_transaction() as conn:
        if guard is not None and not await guard(conn):
            return 0
        count = await insert_notifications(
            conn, recipients, notification_type, title, body, meetup_id, data
        )

    schedule_push(PendingPush(recipients, title, body, data))
    return count


def schedule_push(push: PendingPush) -> asyncio.Task:
    """
    Start push delivery in the background and return immediately.

    The returned task never raises; failures are logged by the task itself.
    Must be called from inside the running event loop.
    """
    task = asyncio.get_running_loop().create_task(
        _deliver(push), name=f"push:{push.data.get('type', 'notification')}"
    )
    _push_tasks.add(task)
    task.add_done_callback(_push_tasks.discard)
    return task


async def _deliver(push: PendingPush) -> None:
    try:
        result = await send_push(push.user_ids, push.title, push.body, push.data)
    except Exception as e:
        logger.error(f"Push delivery to {len(push.user_ids)} users failed: {e}")
        return

    if not result.get("success"):
        logger.debug(f"Push not delivered ({result.get('reason')}) for {push.data}")


async def wait_for_pending_pushes(timeout: float | None = None) -> int:
    """
    Wait for background push tasks to finish (used at shutdown).

    Returns:
        Number of tasks still running when the timeout expired
    """
    pending = {task for task in _push_tasks if not task.done()}
    if not pending:
        return 0
    _, still_running = await asyncio.wait(pending, timeout=timeout)
    return len(still_running)
