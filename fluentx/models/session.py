"""Models for classroom session (room) events."""

from enum import Enum
from typing import Literal, Optional

from pydantic import Field

from .common import WireModel


class ParticipantRole(str, Enum):
    """Which side of the lesson a participant is on."""
    TUTOR = "tutor"
    STUDENT = "student"


class Participants(WireModel):
    tutor_id: Optional[str] = None
    student_id: Optional[str] = None
    tutor_socket_id: Optional[str] = None
    student_socket_id: Optional[str] = None

    def user_id_for(self, role: ParticipantRole) -> Optional[str]:
        return self.tutor_id if role == ParticipantRole.TUTOR else self.student_id


class SessionState(WireModel):
    """Inbound `session:state` payload."""
    session_id: str
    participants: Participants = Field(default_factory=Participants)
    status: Literal["active", "waiting"] = "waiting"


class UserJoined(WireModel):
    """Inbound `session:user-joined` payload."""
    user_id: str
    user_type: str


class UserLeft(WireModel):
    """Inbound `session:user-left` payload."""
    user_id: Optional[str] = None
    user_type: str


class LessonEnded(WireModel):
    """Inbound `session:lesson-ended` payload (tutor closed the lesson)."""
    tutor_id: str
    message: Optional[str] = None
