"""Session room membership on top of the socket channel."""

import contextlib
import inspect
import logging
from typing import Any, AsyncIterator, Callable, Optional

from ..models import LessonEnded, ParticipantRole, SessionState, UserJoined, UserLeft
from . import events
from .events import decoded
from .socket_client import SocketChannel, SubscriptionGroup

logger = logging.getLogger(__name__)


async def _notify(callback: Optional[Callable], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class SessionChannel:
    """
    Joins and leaves one classroom session and mirrors its server-side state.

    Callbacks may be plain functions or coroutines:
        on_participant_joined(UserJoined)
        on_participant_left(UserLeft)
        on_state_changed(SessionState)
        on_lesson_ended(LessonEnded)
    """

    def __init__(
        self,
        channel: SocketChannel,
        on_participant_joined: Optional[Callable] = None,
        on_participant_left: Optional[Callable] = None,
        on_state_changed: Optional[Callable] = None,
        on_lesson_ended: Optional[Callable] = None,
    ):
        self.channel = channel
        self.on_participant_joined = on_participant_joined
        self.on_participant_left = on_participant_left
        self.on_state_changed = on_state_changed
        self.on_lesson_ended = on_lesson_ended

        self.session_id: Optional[str] = None
        self.state: Optional[SessionState] = None
        self.lesson_ended: Optional[LessonEnded] = None
        self._subscriptions = SubscriptionGroup()
        self._end_sent = False

    @property
    def joined_session(self) -> bool:
        return self.session_id is not None

    @property
    def is_connected(self) -> bool:
        return self.state is not None and self.state.status == "active"

    def participant(self, role: ParticipantRole) -> Optional[str]:
        if self.state is None:
            return None
        return self.state.participants.user_id_for(role)

    async def join(self, session_id: str) -> None:
        if self.session_id is not None:
            if self.session_id == session_id:
                return
            await self.leave()

        add = self._subscriptions.add
        add(self.channel.on(
            events.SESSION_USER_JOINED,
            decoded(events.SESSION_USER_JOINED, self._handle_user_joined),
        ))
        add(self.channel.on(
            events.SESSION_USER_LEFT,
            decoded(events.SESSION_USER_LEFT, self._handle_user_left),
        ))
        add(self.channel.on(
            events.SESSION_STATE,
            decoded(events.SESSION_STATE, self._handle_state),
        ))
        add(self.channel.on(
            events.SESSION_LESSON_ENDED,
            decoded(events.SESSION_LESSON_ENDED, self._handle_lesson_ended),
        ))

        self.session_id = session_id
        self._end_sent = False
        await self.channel.emit(events.SESSION_JOIN, {"sessionId": session_id})
        logger.info("Joined session %s", session_id)

    async def leave(self) -> None:
        if self.session_id is None:
            return
        session_id = self.session_id
        self._subscriptions.unsubscribe_all()
        self.session_id = None
        self.state = None
        if self.channel.connected:
            await self.channel.emit(events.SESSION_LEAVE)
        logger.info("Left session %s", session_id)

    async def end_lesson(self, message: Optional[str] = None) -> bool:
        """Tell the student the lesson is over. Only the first call sends anything."""
        if self._end_sent or self.session_id is None:
            return False
        self._end_sent = True
        payload = {"message": message} if message else {}
        await self.channel.emit(events.SESSION_END_LESSON, payload)
        return True

    @contextlib.asynccontextmanager
    async def joined(self, session_id: str) -> AsyncIterator["SessionChannel"]:
        await self.join(session_id)
        try:
            yield self
        finally:
            await self.leave()

    async def _handle_user_joined(self, data: UserJoined) -> None:
        logger.info("User joined: %s (%s)", data.user_id, data.user_type)
        await _notify(self.on_participant_joined, data)

    async def _handle_user_left(self, data: UserLeft) -> None:
        logger.info("User left: %s (%s)", data.user_id, data.user_type)
        await _notify(self.on_participant_left, data)

    async def _handle_state(self, state: SessionState) -> None:
        if self.session_id is not None and state.session_id != self.session_id:
            logger.warning(
                "Ignoring state for session %s while in %s", state.session_id, self.session_id
            )
            return
        self.state = state
        await _notify(self.on_state_changed, state)

    async def _handle_lesson_ended(self, data: LessonEnded) -> None:
        logger.info("Lesson ended by tutor %s", data.tutor_id)
        self.lesson_ended = data
        await _notify(self.on_lesson_ended, data)
