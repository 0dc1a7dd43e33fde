"""Pydantic wire models for the marketplace REST API and socket events."""

from .common import WireModel
from .chat import ChatMessage, FileAttachment, SendMessage, TypingIndicator
from .session import (
    LessonEnded,
    ParticipantRole,
    Participants,
    SessionState,
    UserJoined,
    UserLeft,
)
from .signaling import (
    AnswerSignal,
    IceCandidate,
    IceCandidateSignal,
    OfferSignal,
    SessionDescription,
)
from .schedule import (
    AvailableSlot,
    NextLesson,
    RecentActivity,
    StudentBooking,
    StudentStats,
    TimeSlot,
    WeekSchedule,
    WeekSlot,
)
from .tutor import AvailabilityCell, Tutor, TutorProfile, TutorSearchParams, TutorSearchResponse
from .user import (
    EmailChange,
    PasswordChange,
    PersonalInfoUpdate,
    StudentRegisterParams,
    TutorRegisterParams,
    UserProfile,
)
from .notification import Notification, NotificationList, NotificationRead

__all__ = [
    "WireModel",
    # Chat
    "ChatMessage",
    "FileAttachment",
    "SendMessage",
    "TypingIndicator",
    # Session
    "LessonEnded",
    "ParticipantRole",
    "Participants",
    "SessionState",
    "UserJoined",
    "UserLeft",
    # Signaling
    "AnswerSignal",
    "IceCandidate",
    "IceCandidateSignal",
    "OfferSignal",
    "SessionDescription",
    # Schedule
    "AvailableSlot",
    "NextLesson",
    "RecentActivity",
    "StudentBooking",
    "StudentStats",
    "TimeSlot",
    "WeekSchedule",
    "WeekSlot",
    # Tutor
    "AvailabilityCell",
    "Tutor",
    "TutorProfile",
    "TutorSearchParams",
    "TutorSearchResponse",
    # User
    "EmailChange",
    "PasswordChange",
    "PersonalInfoUpdate",
    "StudentRegisterParams",
    "TutorRegisterParams",
    "UserProfile",
    # Notifications
    "Notification",
    "NotificationList",
    "NotificationRead",
]
