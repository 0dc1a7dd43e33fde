"""Live notification feed over the socket channel."""

import logging
from typing import Callable, Optional

from ..models import Notification, NotificationList, NotificationRead
from . import events
from .events import decoded
from .socket_client import SocketChannel, SubscriptionGroup

logger = logging.getLogger(__name__)


class NotificationFeed:
    """Keeps a newest-first notification list and unread count in sync with the server."""

    def __init__(
        self,
        channel: SocketChannel,
        on_new: Optional[Callable[[Notification], None]] = None,
    ):
        self.channel = channel
        self.on_new = on_new
        self.notifications: list[Notification] = []
        self.unread_count = 0
        self._subscriptions = SubscriptionGroup()

    async def start(self) -> None:
        if len(self._subscriptions):
            return
        add = self._subscriptions.add
        add(self.channel.on("connect", self.subscribe))
        for event, handler in (
            (events.NOTIFICATION_LIST, self._handle_list),
            (events.NOTIFICATION_NEW, self._handle_new),
            (events.NOTIFICATION_READ, self._handle_read),
            (events.NOTIFICATION_READ_ALL, self._handle_read_all),
            (events.NOTIFICATION_DELETE, self._handle_delete),
        ):
            add(self.channel.on(event, decoded(event, handler)))
        if self.channel.connected:
            await self.subscribe()

    def stop(self) -> None:
        self._subscriptions.unsubscribe_all()

    async def subscribe(self) -> None:
        await self.channel.emit(events.NOTIFICATION_SUBSCRIBE)

    def _handle_list(self, data: NotificationList) -> None:
        self.notifications = list(data.notifications)
        self.unread_count = data.unread_count

    def _handle_new(self, notification: Notification) -> None:
        self.notifications.insert(0, notification)
        if not notification.is_read:
            self.unread_count += 1
        if self.on_new is not None:
            self.on_new(notification)

    def _handle_read(self, data: NotificationRead) -> None:
        for i, item in enumerate(self.notifications):
            if item.id == data.notification_id:
                self.notifications[i] = item.model_copy(update={"is_read": True})
        self.unread_count = data.unread_count

    def _handle_read_all(self, data: NotificationRead) -> None:
        self.notifications = [n.model_copy(update={"is_read": True}) for n in self.notifications]
        self.unread_count = data.unread_count

    def _handle_delete(self, data: NotificationRead) -> None:
        self.notifications = [n for n in self.notifications if n.id != data.notification_id]
        self.unread_count = data.unread_count
