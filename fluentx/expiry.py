"""
Session expiry warning.

The server session lives for a fixed time after login. The timer counts
down locally from the moment the user is known to be authenticated and
raises a warning shortly before the end, offering a refresh.

    IDLE --authenticated--> COUNTING --remaining <= warn--> WARNING --remaining <= 0--> EXPIRED
    any --unauthenticated--> IDLE
    COUNTING/WARNING --refresh ok--> COUNTING
"""

import asyncio
import inspect
import logging
import math
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .errors import ApiError

logger = logging.getLogger(__name__)


class ExpiryState(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    WARNING = "warning"
    EXPIRED = "expired"


class SessionExpiryTimer:
    def __init__(
        self,
        session_minutes: int = 30,
        warn_minutes: int = 3,
        refresh: Optional[Callable[[], Awaitable[Any]]] = None,
        on_state_change: Optional[Callable[[ExpiryState], Any]] = None,
        on_refreshed: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            session_minutes: Server session lifetime
            warn_minutes: Show the warning when this many minutes remain
            refresh: Coroutine that extends the session (AuthApi.refresh_session)
            on_state_change: Called with the new state on every transition
            on_refreshed: Called after a successful refresh
            clock: Seconds clock; tests pass a fake
        """
        self.session_seconds = session_minutes * 60
        self.warn_seconds = warn_minutes * 60
        self._refresh = refresh
        self.on_state_change = on_state_change
        self.on_refreshed = on_refreshed
        self._clock = clock

        self.state = ExpiryState.IDLE
        self.remaining = self.session_seconds
        self.dismissed = False
        self._start: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._interval = 1.0

    def _set_state(self, state: ExpiryState) -> None:
        if state == self.state:
            return
        logger.debug("Session expiry: %s -> %s", self.state.value, state.value)
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _restart(self) -> None:
        self._start = self._clock()
        self.remaining = self.session_seconds
        self.dismissed = False
        self._set_state(ExpiryState.COUNTING)

    def set_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self._restart()
        else:
            self._start = None
            self.remaining = self.session_seconds
            self.dismissed = False
            self._set_state(ExpiryState.IDLE)
            self.stop()

    def tick(self) -> ExpiryState:
        if self._start is None or self.state in (ExpiryState.IDLE, ExpiryState.EXPIRED):
            return self.state
        elapsed = math.floor(self._clock() - self._start)
        self.remaining = self.session_seconds - elapsed
        if self.remaining <= 0:
            self._set_state(ExpiryState.EXPIRED)
        elif self.remaining <= self.warn_seconds:
            self._set_state(ExpiryState.WARNING)
        return self.state

    @property
    def warning_visible(self) -> bool:
        return self.state == ExpiryState.WARNING and not self.dismissed

    def dismiss(self) -> None:
        """Hide the warning. Counting goes on."""
        self.dismissed = True

    def format_remaining(self) -> str:
        remaining = max(0, self.remaining)
        return f"{remaining // 60}:{remaining % 60:02d}"

    async def refresh(self) -> bool:
        """Extend the session. On failure the state is kept so the user can retry."""
        if self._refresh is None:
            raise RuntimeError("No refresh callable configured")
        try:
            result = await self._refresh()
        except ApiError as e:
            logger.warning("Session refresh failed: %s", e.message)
            return False
        if not (isinstance(result, dict) and result.get("success")):
            return False
        self._restart()
        # the background loop exits on EXPIRED
        if self._task is not None and self._task.done():
            self.start(self._interval)
        if self.on_refreshed is not None:
            outcome = self.on_refreshed()
            if inspect.isawaitable(outcome):
                await outcome
        return True

    async def run(self, interval: float = 1.0) -> None:
        while self.tick() not in (ExpiryState.IDLE, ExpiryState.EXPIRED):
            await asyncio.sleep(interval)

    def start(self, interval: float = 1.0) -> asyncio.Task:
        """Run the countdown in the background (requires a running loop)."""
        self._interval = interval
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run(interval))
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
