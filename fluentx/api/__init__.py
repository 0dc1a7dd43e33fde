"""Endpoint wrappers for the marketplace REST API."""

from .auth import PORTALS, AuthApi
from .schedule import ScheduleApi, TutorScheduleApi
from .tutor import TutorApi
from .notification import NotificationApi

__all__ = [
    "AuthApi",
    "PORTALS",
    "ScheduleApi",
    "TutorScheduleApi",
    "TutorApi",
    "NotificationApi",
]
