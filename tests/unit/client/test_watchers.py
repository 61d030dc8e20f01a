"""Tests for the background session watchers, using real timers."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from gatehouse.client import SessionManager, SessionPayload, SessionStatus
from gatehouse.client.watchers import Watcher
from gatehouse.domain.entities import User


def make_user() -> User:
    return User(id=1, name="Jane", email="jane@example.com")


@pytest.fixture
def backend():
    mock = AsyncMock()
    mock.fetch_me.return_value = SessionPayload(user=make_user())
    return mock


@pytest.mark.asyncio
async def test_timers_run_only_while_authenticated(backend):
    session = SessionManager(backend, idle_timeout=60, refresh_interval=60)
    await session.start()
    assert not session.timers_running

    session.hydrate(make_user(), "abc")
    assert session.timers_running

    await session.logout()
    assert not session.timers_running

    await session.close()


@pytest.mark.asyncio
async def test_idle_watcher_logs_out(backend):
    async with SessionManager(
        backend, idle_timeout=0.05, refresh_interval=60, idle_check_interval=0.01
    ) as session:
        session.hydrate(make_user(), "abc")

        await asyncio.sleep(0.2)

        assert session.status is SessionStatus.IDLE
        assert session.state.token is None
        assert not session.timers_running
        backend.logout.assert_not_called()


@pytest.mark.asyncio
async def test_periodic_refresh(backend):
    async with SessionManager(backend, idle_timeout=60, refresh_interval=0.02) as session:
        session.hydrate(make_user(), "abc")

        await asyncio.sleep(0.15)

        assert backend.fetch_me.await_count >= 2
        assert session.state.last_refresh_at is not None


@pytest.mark.asyncio
async def test_refresher_stops_when_refresh_rejects_session(backend):
    from gatehouse.domain.exceptions import AuthenticationFailed

    backend.fetch_me.side_effect = AuthenticationFailed()
    async with SessionManager(backend, idle_timeout=60, refresh_interval=0.02) as session:
        session.hydrate(make_user(), "abc")

        await asyncio.sleep(0.1)

        assert session.status is SessionStatus.IDLE
        assert backend.fetch_me.await_count == 1
        assert not session.timers_running


@pytest.mark.asyncio
async def test_connectivity_watcher_refreshes_on_reconnect(backend):
    answers = iter([False, True])

    async def probe() -> bool:
        return next(answers, True)

    session = SessionManager(backend, connectivity_probe=probe, connectivity_interval=0.01)
    session.hydrate(make_user(), "abc")

    await session.start()
    await asyncio.sleep(0.1)
    await session.close()

    assert session.online is True
    backend.fetch_me.assert_awaited_once_with("abc")


@pytest.mark.asyncio
async def test_close_cancels_everything(backend):
    session = SessionManager(backend, connectivity_probe=AsyncMock(return_value=True))
    session.hydrate(make_user(), "abc")
    await session.start()
    assert session.timers_running

    await session.close()

    assert not session.timers_running


def test_watcher_interval_must_be_positive():
    with pytest.raises(ValueError):
        Watcher(0)
