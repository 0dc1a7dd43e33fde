"""Models for in-app notifications."""

from typing import Any, Optional

from pydantic import Field

from .common import WireModel


class Notification(WireModel):
    id: str
    type: str = "system"
    title: str = ""
    message: str = ""
    timestamp: str = ""
    is_read: bool = False
    data: Optional[dict[str, Any]] = None


class NotificationList(WireModel):
    """Payload of GET /notifications and the `notification:list` event."""
    notifications: list[Notification] = Field(default_factory=list)
    unread_count: int = 0


class NotificationRead(WireModel):
    """`notification:read` / `notification:delete` payload."""
    notification_id: Optional[str] = None
    unread_count: int = 0
