"""Add indexes backing the scheduled job guards.

Revision ID: 002
Revises: 001
Create Date: 2025-03-08

The reminder and review jobs check for an existing notification of their
type per meetup on every tick; the no-show job checks for any participant
already flagged. Both lookups ran as sequential scans on large tables.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        "idx_notifications_type_meetup",
        "notifications",
        ["type", "meetup_id"],
        unique=False,
    )
    op.create_index(
        "idx_meetup_participants_no_show",
        "meetup_participants",
        ["meetup_id"],
        unique=False,
        postgresql_where=sa.text("no_show = true"),
    )


def downgrade() -> None:
    op.drop_index("idx_meetup_participants_no_show", table_name="meetup_participants")
    op.drop_index("idx_notifications_type_meetup", table_name="notifications")
