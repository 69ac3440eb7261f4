"""
Notification system: inbox rows plus best-effort push delivery.

Public API:
    notify_many(user_ids, type, title, body, meetup_id, guard) - Persist + push
    insert_notifications(conn, ...) - Persist inside a caller's transaction
    schedule_push(PendingPush(...)) - Fire-and-forget push after commit
    send_push(user_ids, title, body, data) - Push only
    send_to_tokens(tokens, title, body, data) - Batched provider delivery
"""

from .channels.push import send_push, send_to_tokens
from .dispatcher import (
    PendingPush,
    build_push_data,
    insert_notifications,
    notify_many,
    schedule_push,
    wait_for_pending_pushes,
)
from .templates import get_title_and_body

__all__ = [
    "PendingPush",
    "build_push_data",
    "insert_notifications",
    "notify_many",
    "schedule_push",
    "wait_for_pending_pushes",
    "send_push",
    "send_to_tokens",
    "get_title_and_body",
]
