"""
Wall-clock helpers.

Meetups store a local date and time (no offset), so every time comparison
in the jobs uses a naive datetime in the configured meetup timezone.
"""

from datetime import datetime

import pytz

from .config import get_meetup_timezone


def local_now(tz_name: str | None = None) -> datetime:
    """
    Current wall-clock time in the meetup timezone, without tzinfo.

    Args:
        tz_name: Timezone string (e.g., "Asia/Seoul"); defaults to MEETUP_TIMEZONE

    Returns:
        Naive datetime comparable with meetup date + time
    """
    tz = pytz.timezone(tz_name or get_meetup_timezone())
    return datetime.now(pytz.UTC).astimezone(tz).replace(tzinfo=None)
