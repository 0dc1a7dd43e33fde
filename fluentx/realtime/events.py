"""Socket.IO event names and boundary decoding of inbound payloads.

Every inbound event is validated against its pydantic model before any
handler sees it; a payload that doesn't match is logged and dropped.
"""

import inspect
import logging
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from ..errors import PayloadError
from ..models import (
    AnswerSignal,
    ChatMessage,
    IceCandidateSignal,
    LessonEnded,
    Notification,
    NotificationList,
    NotificationRead,
    OfferSignal,
    SessionState,
    TypingIndicator,
    UserJoined,
    UserLeft,
)

logger = logging.getLogger(__name__)

# Session room
SESSION_JOIN = "session:join"
SESSION_LEAVE = "session:leave"
SESSION_END_LESSON = "session:end-lesson"
SESSION_USER_JOINED = "session:user-joined"
SESSION_USER_LEFT = "session:user-left"
SESSION_STATE = "session:state"
SESSION_LESSON_ENDED = "session:lesson-ended"

# Chat
CHAT_SEND = "chat:send"
CHAT_TYPING = "chat:typing"
CHAT_REQUEST_HISTORY = "chat:request-history"
CHAT_MESSAGE = "chat:message"
CHAT_HISTORY = "chat:history"

# WebRTC signaling
WEBRTC_OFFER = "webrtc:offer"
WEBRTC_ANSWER = "webrtc:answer"
WEBRTC_ICE_CANDIDATE = "webrtc:ice-candidate"
WEBRTC_PEER_LEFT = "webrtc:peer-left"

# Notifications
NOTIFICATION_SUBSCRIBE = "notification:subscribe"
NOTIFICATION_LIST = "notification:list"
NOTIFICATION_NEW = "notification:new"
NOTIFICATION_READ = "notification:read"
NOTIFICATION_READ_ALL = "notification:read-all"
NOTIFICATION_DELETE = "notification:delete"

INBOUND_PAYLOADS: dict[str, TypeAdapter] = {
    SESSION_USER_JOINED: TypeAdapter(UserJoined),
    SESSION_USER_LEFT: TypeAdapter(UserLeft),
    SESSION_STATE: TypeAdapter(SessionState),
    SESSION_LESSON_ENDED: TypeAdapter(LessonEnded),
    CHAT_MESSAGE: TypeAdapter(ChatMessage),
    CHAT_HISTORY: TypeAdapter(list[ChatMessage]),
    CHAT_TYPING: TypeAdapter(TypingIndicator),
    WEBRTC_OFFER: TypeAdapter(OfferSignal),
    WEBRTC_ANSWER: TypeAdapter(AnswerSignal),
    WEBRTC_ICE_CANDIDATE: TypeAdapter(IceCandidateSignal),
    NOTIFICATION_LIST: TypeAdapter(NotificationList),
    NOTIFICATION_NEW: TypeAdapter(Notification),
    NOTIFICATION_READ: TypeAdapter(NotificationRead),
    NOTIFICATION_READ_ALL: TypeAdapter(NotificationRead),
    NOTIFICATION_DELETE: TypeAdapter(NotificationRead),
}


def decode(event: str, payload: Any) -> Any:
    """
    Validate an inbound payload for `event`.

    Raises:
        PayloadError: If the event is unknown or the payload doesn't match
    """
    adapter = INBOUND_PAYLOADS.get(event)
    if adapter is None:
        raise PayloadError(event, "no payload model registered")
    try:
        return adapter.validate_python(payload)
    except ValidationError as e:
        raise PayloadError(event, str(e)) from e


def decoded(event: str, handler: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Wrap a handler so it receives the validated model instead of the raw dict."""

    async def _wrapper(payload: Any = None) -> None:
        try:
            value = decode(event, payload)
        except PayloadError as e:
            logger.warning("Dropping %s: %s", event, e.detail)
            return
        result = handler(value)
        if inspect.isawaitable(result):
            await result

    return _wrapper
