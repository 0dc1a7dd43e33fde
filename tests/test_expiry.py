"""Tests for the session expiry state machine under a fake clock."""

import asyncio

import pytest

from fluentx.errors import ApiError
from fluentx.expiry import ExpiryState, SessionExpiryTimer


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def _timer(clock, **kwargs) -> SessionExpiryTimer:
    return SessionExpiryTimer(session_minutes=30, warn_minutes=3, clock=clock, **kwargs)


class TestTransitions:
    def test_idle_until_authenticated(self, clock):
        timer = _timer(clock)
        clock.now += 3600
        assert timer.tick() == ExpiryState.IDLE

    def test_counting_then_warning_then_expired(self, clock):
        states = []
        timer = _timer(clock, on_state_change=states.append)
        timer.set_authenticated(True)

        clock.now += 27 * 60 - 1
        assert timer.tick() == ExpiryState.COUNTING
        assert timer.remaining == 181
        clock.now += 1
        assert timer.tick() == ExpiryState.WARNING
        assert timer.warning_visible
        assert timer.format_remaining() == "3:00"
        clock.now += 179.5
        assert timer.tick() == ExpiryState.WARNING
        assert timer.format_remaining() == "0:01"
        clock.now += 0.5
        assert timer.tick() == ExpiryState.EXPIRED
        assert not timer.warning_visible

        assert states == [ExpiryState.COUNTING, ExpiryState.WARNING, ExpiryState.EXPIRED]

    def test_expired_is_terminal(self, clock):
        timer = _timer(clock)
        timer.set_authenticated(True)
        clock.now += 31 * 60
        timer.tick()
        clock.now += 60
        assert timer.tick() == ExpiryState.EXPIRED
        assert timer.format_remaining() == "0:00"

    def test_logout_returns_to_idle(self, clock):
        timer = _timer(clock)
        timer.set_authenticated(True)
        clock.now += 28 * 60
        timer.tick()
        timer.set_authenticated(False)
        assert timer.state == ExpiryState.IDLE
        assert not timer.warning_visible

    def test_dismiss_hides_warning_but_keeps_counting(self, clock):
        timer = _timer(clock)
        timer.set_authenticated(True)
        clock.now += 28 * 60
        timer.tick()
        timer.dismiss()
        assert not timer.warning_visible
        clock.now += 2 * 60
        assert timer.tick() == ExpiryState.EXPIRED


class TestRefresh:
    def test_successful_refresh_restarts_countdown(self, clock):
        refreshed = []

        async def refresh():
            return {"success": True}

        timer = _timer(clock, refresh=refresh, on_refreshed=lambda: refreshed.append(1))
        timer.set_authenticated(True)
        clock.now += 28 * 60
        timer.tick()
        timer.dismiss()

        assert asyncio.run(timer.refresh()) is True
        assert timer.state == ExpiryState.COUNTING
        assert timer.remaining == 30 * 60
        assert timer.dismissed is False
        assert refreshed == [1]
        clock.now += 26 * 60
        assert timer.tick() == ExpiryState.COUNTING

    def test_failed_refresh_keeps_warning(self, clock):
        async def refresh():
            raise ApiError("Network error: timed out")

        timer = _timer(clock, refresh=refresh)
        timer.set_authenticated(True)
        clock.now += 28 * 60
        timer.tick()

        assert asyncio.run(timer.refresh()) is False
        assert timer.state == ExpiryState.WARNING
        assert timer.warning_visible

    def test_unsuccessful_body_keeps_state(self, clock):
        async def refresh():
            return {"success": False}

        timer = _timer(clock, refresh=refresh)
        timer.set_authenticated(True)
        clock.now += 28 * 60
        timer.tick()
        assert asyncio.run(timer.refresh()) is False
        assert timer.state == ExpiryState.WARNING


class TestRunLoop:
    def test_run_stops_when_expired(self, clock):
        timer = SessionExpiryTimer(session_minutes=1, warn_minutes=0, clock=clock)
        timer.set_authenticated(True)
        clock.now += 61

        asyncio.run(asyncio.wait_for(timer.run(interval=0.001), 1.0))
        assert timer.state == ExpiryState.EXPIRED

    def test_refresh_after_expiry_resumes_countdown(self, clock):
        async def refresh():
            return {"success": True}

        timer = SessionExpiryTimer(session_minutes=1, warn_minutes=0, refresh=refresh, clock=clock)

        async def scenario():
            timer.set_authenticated(True)
            first = timer.start(interval=0.001)
            clock.now += 61
            await asyncio.wait_for(first, 1.0)
            assert timer.state == ExpiryState.EXPIRED

            assert await timer.refresh() is True
            assert timer.state == ExpiryState.COUNTING
            second = timer.start(interval=0.001)
            assert second is not first
            clock.now += 61
            await asyncio.wait_for(second, 1.0)

        asyncio.run(scenario())
        assert timer.state == ExpiryState.EXPIRED

    def test_start_and_stop(self, clock):
        timer = _timer(clock)

        async def scenario():
            timer.set_authenticated(True)
            task = timer.start()
            assert timer.start() is task
            await asyncio.sleep(0)
            timer.stop()
            await asyncio.sleep(0)
            return task

        task = asyncio.run(scenario())
        assert task.cancelled()
