"""Models for the /schedule endpoints."""

from typing import Literal, Optional

from pydantic import Field

from .common import WireModel


class AvailableSlot(WireModel):
    """An open slot on a tutor's schedule. `date`/`time` are Philippine time."""
    slot_id: str
    tutor_id: Optional[str] = None
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="12-hour clock, e.g. '6:00 PM'")
    duration_minutes: int = 25


class StudentBooking(WireModel):
    booking_id: str
    tutor_id: str
    tutor_name: str
    tutor_avatar: Optional[str] = None
    slot_date: str
    slot_time: str
    duration_minutes: int
    status: str
    attendance_tutor: Optional[str] = None
    attendance_student: Optional[str] = None
    booked_at: Optional[str] = None


class NextLesson(WireModel):
    tutor_name: str
    tutor_avatar: Optional[str] = None
    slot_date: str
    slot_time: str
    booking_id: str


class StudentStats(WireModel):
    lessons_completed: int = 0
    upcoming_lessons: int = 0
    total_hours: float = 0
    next_lesson: Optional[NextLesson] = None


class RecentActivity(WireModel):
    type: Literal["lesson_completed", "lesson_booked"]
    tutor_name: str
    tutor_avatar: Optional[str] = None
    date: str
    action: str
    booking_id: Optional[str] = None
    slot_date: Optional[str] = None
    timestamp: Optional[str] = None


class TimeSlot(WireModel):
    """A slot the tutor opens, in Philippine time."""
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="12-hour clock, e.g. '6:00 PM'")


class WeekSlot(WireModel):
    date: str
    time: str
    status: Literal["open", "booked", "closed"]
    booking_id: Optional[str] = None
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    penalty_code: Optional[str] = None
    attendance_tutor: Optional[Literal["present", "absent"]] = None
    attendance_student: Optional[Literal["present", "absent"]] = None


class WeekSchedule(WireModel):
    """The tutor's own slots for one week."""
    week_start: str
    week_end: str
    slots: list[WeekSlot] = Field(default_factory=list)
