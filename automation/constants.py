"""Domain constants shared by the scheduled jobs."""

from datetime import timedelta

# Meetups have no end time column; every meetup is assumed to last this long.
MEETUP_DURATION = timedelta(hours=3)

# Reminder goes out once a meetup starts within this window.
REMINDER_LEAD_TIME = timedelta(minutes=30)

# Review prompts: after the meetup ended, until start + REVIEW_WINDOW_END
# falls out of the lookback window.
REVIEW_WINDOW_END = timedelta(hours=5)
REVIEW_LOOKBACK = timedelta(hours=24)

# Attendance is final this long after a meetup ended.
NOSHOW_SETTLE_DELAY = timedelta(hours=24)

# Score assumed for users whose trust_score is NULL.
DEFAULT_TRUST_SCORE = 40

# FCM accepts at most 500 tokens per multicast call.
PUSH_BATCH_SIZE = 500
