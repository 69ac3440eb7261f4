"""SQLAlchemy Core table definitions for the tables the jobs read and write.

Meetups, participants, users and attendances belong to the booking flow;
this service only reads them and advances status / no-show / trust score.
Notifications are written here and read by the notification inbox API.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from .enums import (
    attendance_status_enum,
    device_platform_enum,
    meetup_status_enum,
    participant_status_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. USERS
# =====================================================
users = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("email", Text),
    Column("trust_score", Integer, server_default="40"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 2. MEETUPS
# =====================================================
meetups = Table(
    "meetups",
    metadata,
    Column("meetup_id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("location", Text),
    # Local wall-clock start, see automation.timezone
    Column("date", Date, nullable=False),
    Column("time", Time, nullable=False),
    Column("status", meetup_status_enum, nullable=False, server_default="recruiting"),
    Column(
        "host_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_meetups_status", "status"),
    Index("idx_meetups_date_time", "date", "time"),
)


def meetup_starts_at():
    """Start of a meetup as a SQL timestamp expression (date + time)."""
    return meetups.c.date + meetups.c.time


# =====================================================
# 3. MEETUP_PARTICIPANTS
# =====================================================
meetup_participants = Table(
    "meetup_participants",
    metadata,
    Column("participant_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "meetup_id",
        Integer,
        ForeignKey("meetups.meetup_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("status", participant_status_enum, nullable=False, server_default="pending"),
    Column("attended", Boolean, nullable=False, server_default="false"),
    Column("no_show", Boolean, nullable=False, server_default="false"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("meetup_id", "user_id", name="meetup_participants_meetup_user_unique"),
    Index("idx_meetup_participants_user_id", "user_id"),
    # Backs the "meetup already settled" guard of the no-show job
    Index(
        "idx_meetup_participants_no_show",
        "meetup_id",
        postgresql_where=text("no_show = true"),
    ),
)


# =====================================================
# 4. ATTENDANCES (check-ins recorded by the meetup host/app)
# =====================================================
attendances = Table(
    "attendances",
    metadata,
    Column("attendance_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "meetup_id",
        Integer,
        ForeignKey("meetups.meetup_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("status", attendance_status_enum, nullable=False, server_default="pending"),
    Column("checked_in_at", TIMESTAMP(timezone=True)),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("meetup_id", "user_id", name="attendances_meetup_user_unique"),
)


# =====================================================
# 5. NOTIFICATIONS
# =====================================================
notifications = Table(
    "notifications",
    metadata,
    Column("notification_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("type", Text, nullable=False),  # NotificationType value
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column(
        "meetup_id",
        Integer,
        ForeignKey("meetups.meetup_id", ondelete="SET NULL"),
    ),
    Column("data", JSONB),
    Column("is_read", Boolean, nullable=False, server_default="false"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_notifications_user_id", "user_id"),
    # Backs the per-meetup idempotency guard
    Index("idx_notifications_type_meetup", "type", "meetup_id"),
)


# =====================================================
# 6. DEVICE_TOKENS
# =====================================================
device_tokens = Table(
    "device_tokens",
    metadata,
    Column("token_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("token", Text, nullable=False),
    Column("platform", device_platform_enum, nullable=False, server_default="ios"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("user_id", "token", name="device_tokens_user_token_unique"),
    Index("idx_device_tokens_token", "token"),
)
