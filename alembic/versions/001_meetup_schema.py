"""Meetup schema used by the automation jobs.

Revision ID: 001
Revises:
Create Date: 2025-03-01

Creates users, meetups, participants, attendances, notifications and
device tokens. On a database where the booking service already created
these tables, run: alembic stamp 001
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("trust_score", sa.Integer(), server_default="40", nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id", name=op.f("pk_users")),
    )

    op.create_table(
        "meetups",
        sa.Column("meetup_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column(
            "status", sa.String(length=32), server_default="recruiting", nullable=False
        ),
        sa.Column("host_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["host_id"],
            ["users.user_id"],
            name=op.f("fk_meetups_host_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("meetup_id", name=op.f("pk_meetups")),
    )
    op.create_index("idx_meetups_status", "meetups", ["status"], unique=False)
    op.create_index("idx_meetups_date_time", "meetups", ["date", "time"], unique=False)

    op.create_table(
        "meetup_participants",
        sa.Column("participant_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meetup_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "status", sa.String(length=32), server_default="pending", nullable=False
        ),
        sa.Column("attended", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("no_show", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["meetup_id"],
            ["meetups.meetup_id"],
            name=op.f("fk_meetup_participants_meetup_id_meetups"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
            name=op.f("fk_meetup_participants_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("participant_id", name=op.f("pk_meetup_participants")),
        sa.UniqueConstraint(
            "meetup_id", "user_id", name="meetup_participants_meetup_user_unique"
        ),
    )
    op.create_index(
        "idx_meetup_participants_user_id",
        "meetup_participants",
        ["user_id"],
        unique=False,
    )

    op.create_table(
        "attendances",
        sa.Column("attendance_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meetup_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "status", sa.String(length=32), server_default="pending", nullable=False
        ),
        sa.Column("checked_in_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["meetup_id"],
            ["meetups.meetup_id"],
            name=op.f("fk_attendances_meetup_id_meetups"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
            name=op.f("fk_attendances_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("attendance_id", name=op.f("pk_attendances")),
        sa.UniqueConstraint("meetup_id", "user_id", name="attendances_meetup_user_unique"),
    )

    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("meetup_id", sa.Integer(), nullable=True),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
            name=op.f("fk_notifications_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["meetup_id"],
            ["meetups.meetup_id"],
            name=op.f("fk_notifications_meetup_id_meetups"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("notification_id", name=op.f("pk_notifications")),
    )
    op.create_index(
        "idx_notifications_user_id", "notifications", ["user_id"], unique=False
    )

    op.create_table(
        "device_tokens",
        sa.Column("token_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column(
            "platform", sa.String(length=16), server_default="ios", nullable=False
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
            name=op.f("fk_device_tokens_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("token_id", name=op.f("pk_device_tokens")),
        sa.UniqueConstraint("user_id", "token", name="device_tokens_user_token_unique"),
    )
    op.create_index("idx_device_tokens_token", "device_tokens", ["token"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_device_tokens_token", table_name="device_tokens")
    op.drop_table("device_tokens")
    op.drop_index("idx_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("attendances")
    op.drop_index("idx_meetup_participants_user_id", table_name="meetup_participants")
    op.drop_table("meetup_participants")
    op.drop_index("idx_meetups_date_time", table_name="meetups")
    op.drop_index("idx_meetups_status", table_name="meetups")
    op.drop_table("meetups")
    op.drop_table("users")
