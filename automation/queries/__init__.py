"""Connection-first query helpers. Callers own the connection/transaction."""

from .device_tokens import delete_device_token, get_tokens_for_users
from .participants import (
    get_no_show_candidates,
    get_participant_ids,
    mark_no_show,
    set_trust_score,
)

__all__ = [
    "delete_device_token",
    "get_tokens_for_users",
    "get_participant_ids",
    "get_no_show_candidates",
    "mark_no_show",
    "set_trust_score",
]
