"""Socket.IO channel and the classroom components built on it."""

from .chat import ChatRelay
from .notifications import NotificationFeed
from .session import SessionChannel
from .socket_client import (
    SocketChannel,
    Subscription,
    SubscriptionGroup,
    connect_socket,
    destroy_socket,
    disconnect_socket,
    get_socket,
    init_socket,
)
from .speaking import FrequencyAnalyser, SpeakingDetector
from .webrtc import LocalStream, PeerCoordinator, PlayerMediaDevices, ToggleableTrack

__all__ = [
    "ChatRelay",
    "FrequencyAnalyser",
    "LocalStream",
    "NotificationFeed",
    "PeerCoordinator",
    "PlayerMediaDevices",
    "SessionChannel",
    "SocketChannel",
    "SpeakingDetector",
    "Subscription",
    "SubscriptionGroup",
    "ToggleableTrack",
    "connect_socket",
    "destroy_socket",
    "disconnect_socket",
    "get_socket",
    "init_socket",
]
