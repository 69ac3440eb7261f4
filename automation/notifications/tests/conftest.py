"""Pytest fixtures for notification tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from automation.notifications import dispatcher
from automation.notifications.channels import push


def _as_context_manager(conn):
    """Wrap a connection so `async with get_connection() as conn` yields it."""
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=conn)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


@pytest.fixture
def as_context_manager():
    return _as_context_manager


@pytest.fixture
def mock_conn():
    conn = AsyncMock()
    conn.execute = AsyncMock()
    return conn


@pytest.fixture
def firebase_app(monkeypatch):
    """Pretend Firebase is configured."""
    app = MagicMock(name="firebase_app")
    monkeypatch.setattr(push, "_get_app", lambda: app)
    return app


@pytest.fixture(autouse=True)
def clear_push_tasks():
    yield
    dispatcher._push_tasks.clear()
