"""Socket.IO channel to the classroom server.

Wraps a single socketio.AsyncClient. Reconnection is left to the client's
built-in policy (fixed attempt count, bounded delay). Listeners are
registered through `on()`, which returns a Subscription handle; dropping
the handle is the only way to remove a listener, so scoped users cannot
leak handlers.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Optional

import socketio

from ..config import Settings, get_settings
from ..errors import SocketNotInitializedError

logger = logging.getLogger(__name__)

LIFECYCLE_EVENTS = ("connect", "disconnect", "connect_error")


class Subscription:
    """Handle for one registered listener."""

    def __init__(self, channel: "SocketChannel", event: str, handler: Callable):
        self.channel = channel
        self.event = event
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self.channel._remove_listener(self.event, self.handler)
            self._active = False


class SubscriptionGroup:
    """A set of subscriptions released together (on exit when used as a context manager)."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe_all(self) -> None:
        while self._subscriptions:
            self._subscriptions.pop().unsubscribe()

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __enter__(self) -> "SubscriptionGroup":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe_all()


class SocketChannel:
    """Bidirectional event channel (one Socket.IO connection)."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        reconnection_attempts: int = 5,
        reconnection_delay: float = 1.0,
        reconnection_delay_max: float = 5.0,
        client: Any = None,
    ):
        """
        Args:
            url: Socket server URL
            token: Session token sent as `auth.token` on connect
            reconnection_attempts: Attempts before the transport gives up
            reconnection_delay: Initial reconnect delay in seconds
            reconnection_delay_max: Upper bound for the reconnect delay
            client: Pre-built client (tests inject an in-memory fake)
        """
        self.url = url
        self.token = token
        self._client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay_max,
            logger=False,
            engineio_logger=False,
        )
        self._listeners: dict[str, list[Callable]] = {}
        self._dispatchers: set[str] = set()
        self._destroyed = False

        self._client.on("connect", self._handle_connect)
        self._client.on("disconnect", self._handle_disconnect)
        self._client.on("connect_error", self._handle_connect_error)
        self._dispatchers.update(LIFECYCLE_EVENTS)

    @property
    def connected(self) -> bool:
        return bool(getattr(self._client, "connected", False))

    @property
    def sid(self) -> Optional[str]:
        return getattr(self._client, "sid", None)

    async def _handle_connect(self) -> None:
        logger.info("Socket connected: %s", self.sid)
        await self._dispatch("connect")

    async def _handle_disconnect(self, reason: Any = None) -> None:
        logger.info("Socket disconnected: %s", reason)
        await self._dispatch("disconnect", *([reason] if reason is not None else []))

    async def _handle_connect_error(self, data: Any = None) -> None:
        logger.error("Socket connection error: %s", data)
        await self._dispatch("connect_error", data)

    async def _dispatch(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, ())):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener for %s failed", event)

    def _ensure_dispatcher(self, event: str) -> None:
        if event not in self._dispatchers:
            self._client.on(event, functools.partial(self._dispatch, event))
            self._dispatchers.add(event)

    def _remove_listener(self, event: str, handler: Callable) -> None:
        handlers = self._listeners.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._listeners[event]

    def _check_alive(self) -> None:
        if self._destroyed:
            raise SocketNotInitializedError("Socket channel has been destroyed")

    def on(self, event: str, handler: Callable) -> Subscription:
        """Register a listener. Sync and async handlers are both accepted."""
        self._check_alive()
        self._ensure_dispatcher(event)
        self._listeners.setdefault(event, []).append(handler)
        return Subscription(self, event, handler)

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, ()))
        return sum(len(handlers) for handlers in self._listeners.values())

    async def emit(self, event: str, data: Any = None) -> None:
        self._check_alive()
        if data is None:
            await self._client.emit(event)
        else:
            await self._client.emit(event, data)

    async def connect(self) -> None:
        """Connect unless already connected."""
        self._check_alive()
        if self.connected:
            return
        auth = {"token": self.token} if self.token else None
        await self._client.connect(self.url, auth=auth)

    async def disconnect(self) -> None:
        if self.connected:
            await self._client.disconnect()
            logger.info("Socket manually disconnected")

    async def destroy(self) -> None:
        """Disconnect and drop every listener. The channel cannot be reused."""
        await self.disconnect()
        self._listeners.clear()
        self._destroyed = True
        logger.info("Socket destroyed")


# Process-wide channel shared by the classroom components
_channel: Optional[SocketChannel] = None


def init_socket(
    token: Optional[str] = None,
    settings: Optional[Settings] = None,
    client: Any = None,
) -> SocketChannel:
    """Create the shared channel (idempotent: an existing channel is returned as is)."""
    global _channel
    if _channel is not None:
        return _channel
    settings = settings or get_settings()
    _channel = SocketChannel(
        settings.socket_url,
        token=token,
        reconnection_attempts=settings.reconnection_attempts,
        reconnection_delay=settings.reconnection_delay,
        reconnection_delay_max=settings.reconnection_delay_max,
        client=client,
    )
    return _channel


def get_socket() -> SocketChannel:
    if _channel is None:
        raise SocketNotInitializedError("Socket not initialized. Call init_socket() first.")
    return _channel


async def connect_socket() -> None:
    await get_socket().connect()


async def disconnect_socket() -> None:
    if _channel is not None:
        await _channel.disconnect()


async def destroy_socket() -> None:
    global _channel
    if _channel is not None:
        await _channel.destroy()
        _channel = None
