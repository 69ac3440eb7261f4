"""Tests for participant and device token query helpers."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from automation.enums import AttendanceStatus, ParticipantStatus
from automation.queries.device_tokens import delete_device_token, get_tokens_for_users
from automation.queries.participants import (
    get_no_show_candidates,
    get_participant_ids,
    no_show_candidates_query,
)


def compile_pg(statement):
    return statement.compile(dialect=postgresql.dialect())


class TestNoShowCandidatesQuery:
    def test_excludes_host_attendees_and_confirmed_check_ins(self):
        compiled = compile_pg(no_show_candidates_query(meetup_id=5, host_id=100))
        sql = str(compiled)
        values = list(compiled.params.values())

        assert "LEFT OUTER JOIN attendances" in sql
        assert "attendances.attendance_id IS NULL" in sql
        assert "coalesce(meetup_participants.attended" in sql
        assert "meetup_participants.user_id !=" in sql
        assert 100 in values
        assert AttendanceStatus.confirmed in values
        assert [ParticipantStatus.approved] in values

    @pytest.mark.asyncio
    async def test_returns_plain_dicts(self):
        result = MagicMock()
        result.mappings.return_value.all.return_value = [
            {"user_id": 1, "name": "Minji", "trust_score": 12}
        ]
        conn = AsyncMock()
        conn.execute = AsyncMock(return_value=result)

        rows = await get_no_show_candidates(conn, 5, 100)

        assert rows == [{"user_id": 1, "name": "Minji", "trust_score": 12}]


class TestGetParticipantIds:
    @pytest.mark.asyncio
    async def test_filters_by_given_statuses(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [3, 4]
        conn = AsyncMock()
        conn.execute = AsyncMock(return_value=result)

        ids = await get_participant_ids(
            conn, 5, (ParticipantStatus.approved, ParticipantStatus.completed)
        )

        assert ids == [3, 4]
        compiled = compile_pg(conn.execute.await_args.args[0])
        assert [ParticipantStatus.approved, ParticipantStatus.completed] in list(
            compiled.params.values()
        )


class TestDeviceTokens:
    @pytest.mark.asyncio
    async def test_tokens_deduplicated_in_order(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = ["a", "b", "a", "c"]
        conn = AsyncMock()
        conn.execute = AsyncMock(return_value=result)

        assert await get_tokens_for_users(conn, [1, 2]) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_no_users_skips_query(self):
        conn = AsyncMock()

        assert await get_tokens_for_users(conn, []) == []
        conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_returns_rowcount(self):
        conn = AsyncMock()
        conn.execute = AsyncMock(return_value=MagicMock(rowcount=1))

        assert await delete_device_token(conn, "stale") == 1
