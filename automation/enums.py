"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# Member names equal their values: SQLEnum persists names.
# =====================================================


class MeetupStatus(str, enum.Enum):
    recruiting = "recruiting"
    recruiting_complete = "recruiting_complete"
    in_progress = "in_progress"
    ended = "ended"
    rejected = "rejected"
    suspended = "suspended"


class ParticipantStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    completed = "completed"  # approved and attendance confirmed by the host


class AttendanceStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    rejected = "rejected"


class DevicePlatform(str, enum.Enum):
    ios = "ios"
    android = "android"
    web = "web"


class NotificationType(str, enum.Enum):
    meetup_reminder_30min = "meetup_reminder_30min"
    review_request = "review_request"
    noshow_penalty = "noshow_penalty"
    noshow_report = "noshow_report"


# Meetups that have not started yet
PRE_START_STATUSES = (MeetupStatus.recruiting, MeetupStatus.recruiting_complete)

# Meetups a review prompt may go out for (the time window does the rest)
REVIEWABLE_MEETUP_STATUSES = (
    MeetupStatus.recruiting_complete,
    MeetupStatus.in_progress,
    MeetupStatus.ended,
)

APPROVED_PARTICIPANT_STATUSES = (ParticipantStatus.approved,)
REVIEWER_PARTICIPANT_STATUSES = (ParticipantStatus.approved, ParticipantStatus.completed)


# =====================================================
# SQLAlchemy Enum Types
# Stored as VARCHAR so the booking flow can write plain strings.
# =====================================================

meetup_status_enum = SQLEnum(
    MeetupStatus, name="meetup_status", native_enum=False, length=32
)
participant_status_enum = SQLEnum(
    ParticipantStatus, name="participant_status", native_enum=False, length=32
)
attendance_status_enum = SQLEnum(
    AttendanceStatus, name="attendance_status", native_enum=False, length=32
)
device_platform_enum = SQLEnum(
    DevicePlatform, name="device_platform", native_enum=False, length=16
)
