"""Notification inbox endpoints (tutor portal)."""

from ..http import ApiClient
from ..models import NotificationList


class NotificationApi:
    """Wraps the /notifications endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_notifications(self, limit: int = 50, offset: int = 0) -> NotificationList:
        data = await self.client.request_data(
            "GET",
            "/notifications",
            params={"limit": limit, "offset": offset},
            error_message="Failed to get notifications",
        )
        return NotificationList.model_validate(data or {})

    async def get_unread_count(self) -> int:
        data = await self.client.request_data(
            "GET", "/notifications/unread-count", error_message="Failed to get unread count"
        )
        return int((data or {}).get("unreadCount", 0))

    async def mark_read(self, notification_id: str) -> None:
        await self.client.request_data(
            "POST",
            f"/notifications/{notification_id}/read",
            error_message="Failed to mark notification as read",
        )

    async def mark_all_read(self) -> None:
        await self.client.request_data(
            "POST", "/notifications/read-all", error_message="Failed to mark all as read"
        )

    async def delete(self, notification_id: str) -> None:
        await self.client.request_data(
            "DELETE",
            f"/notifications/{notification_id}",
            error_message="Failed to delete notification",
        )
