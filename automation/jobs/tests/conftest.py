"""Pytest fixtures for scheduled job tests."""

import asyncio
import os
from contextlib import ExitStack, asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.dml import Insert


def make_result(rows=None, scalars=None, scalar=None):
    """Build a stand-in for a SQLAlchemy Result."""
    result = MagicMock()
    result.mappings.return_value.all.return_value = list(rows or [])
    result.scalars.return_value.all.return_value = list(scalars or [])
    result.scalar.return_value = scalar
    return result


class FakeDatabase:
    """
    Scripted replacement for get_connection / get_transaction.

    Every execute() pops the next queued result (an Exception is raised
    instead of returned). Transactions record whether they committed or
    rolled back.
    """

    def __init__(self):
        self.results: list = []
        self.statements: list = []
        self.commits = 0
        self.rollbacks = 0
        self.conn = AsyncMock()
        self.conn.execute = AsyncMock(side_effect=self._execute)

    def queue(self, *results) -> None:
        self.results.extend(results)

    async def _execute(self, statement, *args, **kwargs):
        self.statements.append(statement)
        if not self.results:
            return make_result()
        outcome = self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @asynccontextmanager
    async def connection(self):
        yield self.conn

    @asynccontextmanager
    async def transaction(self):
        try:
            yield self.conn
        except BaseException:
            self.rollbacks += 1
            raise
        self.commits += 1


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def result_of():
    return make_result


class LockingNotificationStore:
    """
    Transactions against a single meetup row, as the notification guards see them.

    A ``FOR UPDATE`` select takes the row lock until the transaction ends,
    existence checks only see committed notifications, and inserted
    recipient batches become visible on commit.
    """

    def __init__(self):
        self.committed: list[list[int]] = []
        self._row_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self):
        pending: list[list[int]] = []
        locked = False

        async def execute(statement, *args, **kwargs):
            nonlocal locked
            await asyncio.sleep(0)
            if isinstance(statement, Insert):
                params = statement.compile(dialect=postgresql.dialect()).params
                pending.append(
                    [v for k, v in sorted(params.items()) if k.startswith("user_id")]
                )
                return make_result()
            if getattr(statement, "_for_update_arg", None) is not None:
                await self._row_lock.acquire()
                locked = True
                return make_result()
            return make_result(scalar=bool(self.committed))

        conn = AsyncMock()
        conn.execute = AsyncMock(side_effect=execute)
        try:
            yield conn
            self.committed.extend(pending)
        finally:
            if locked:
                self._row_lock.release()


@pytest.fixture
def locking_store():
    return LockingNotificationStore()


@pytest_asyncio.fixture
async def db_conn():
    """
    Provide a DB connection that rolls back after each test.

    The schema is created inside the same transaction when missing, so all
    changes made during the test are visible within the test and rolled
    back afterward.
    """
    if not os.environ.get("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set")

    from automation.database import close_engine, get_engine
    from automation.tables import metadata

    engine = get_engine()

    async with engine.connect() as conn:
        txn = await conn.begin()
        try:
            await conn.run_sync(metadata.create_all)
            yield conn
        finally:
            await txn.rollback()

    await close_engine()


@pytest.fixture
def jobs_on_db(db_conn):
    """
    Route every job's connections through db_conn.

    Job transactions become savepoints of the test transaction. Push
    delivery is replaced with mocks, returned as {"dispatcher", "no_show"}.
    """
    from automation.jobs import meetup_reminder, no_show, review_request, status_transition
    from automation.notifications import dispatcher

    @asynccontextmanager
    async def connection():
        yield db_conn

    @asynccontextmanager
    async def transaction():
        async with db_conn.begin_nested():
            yield db_conn

    pushes = {"dispatcher": MagicMock(), "no_show": MagicMock()}
    with ExitStack() as stack:
        for module in (status_transition, meetup_reminder, review_request, no_show, dispatcher):
            if hasattr(module, "get_connection"):
                stack.enter_context(patch.object(module, "get_connection", connection))
            if hasattr(module, "get_transaction"):
                stack.enter_context(patch.object(module, "get_transaction", transaction))
        stack.enter_context(
            patch.object(dispatcher, "schedule_push", pushes["dispatcher"])
        )
        stack.enter_context(patch.object(no_show, "schedule_push", pushes["no_show"]))
        yield pushes
