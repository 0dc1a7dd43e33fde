"""In-lesson chat relay: history, live messages and typing indicator."""

import logging
from typing import Callable, Optional

from ..models import ChatMessage, FileAttachment, SendMessage, TypingIndicator
from . import events
from .events import decoded
from .socket_client import SocketChannel, SubscriptionGroup

logger = logging.getLogger(__name__)


class ChatRelay:
    """
    Relays chat for one session. Messages are kept in arrival order; the
    server's history snapshot replaces whatever was there before.
    """

    def __init__(
        self,
        channel: SocketChannel,
        session_id: str,
        on_message: Optional[Callable[[ChatMessage], None]] = None,
    ):
        self.channel = channel
        self.session_id = session_id
        self.on_message = on_message
        self.messages: list[ChatMessage] = []
        self.is_typing = False
        self.typing_user_id: Optional[str] = None
        self._subscriptions = SubscriptionGroup()

    @property
    def started(self) -> bool:
        return len(self._subscriptions) > 0

    async def start(self) -> None:
        if self.started:
            return
        add = self._subscriptions.add
        add(self.channel.on(events.CHAT_HISTORY, decoded(events.CHAT_HISTORY, self._handle_history)))
        add(self.channel.on(events.CHAT_MESSAGE, decoded(events.CHAT_MESSAGE, self._handle_message)))
        add(self.channel.on(events.CHAT_TYPING, decoded(events.CHAT_TYPING, self._handle_typing)))
        await self.channel.emit(events.CHAT_REQUEST_HISTORY, {"sessionId": self.session_id})

    def stop(self) -> None:
        self._subscriptions.unsubscribe_all()

    async def send_message(
        self,
        text: str,
        correction: Optional[str] = None,
        attachment: Optional[FileAttachment] = None,
    ) -> None:
        payload = SendMessage.build(self.session_id, text, correction, attachment)
        await self.channel.emit(events.CHAT_SEND, payload.to_wire())

    async def send_typing(self, is_typing: bool) -> None:
        await self.channel.emit(events.CHAT_TYPING, {"isTyping": is_typing})

    def _handle_history(self, history: list[ChatMessage]) -> None:
        self.messages = list(history)
        logger.info("Chat history loaded: %d messages", len(history))

    def _handle_message(self, message: ChatMessage) -> None:
        self.messages.append(message)
        if self.on_message is not None:
            self.on_message(message)

    def _handle_typing(self, data: TypingIndicator) -> None:
        self.is_typing = data.is_typing
        self.typing_user_id = data.user_id if data.is_typing else None

    async def __aenter__(self) -> "ChatRelay":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        self.stop()
