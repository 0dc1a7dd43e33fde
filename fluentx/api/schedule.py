"""Lesson schedule endpoints: student booking and dashboard data, tutor slot management."""

import logging
from typing import Any, Iterable, Literal, Optional, Union

from ..http import ApiClient
from ..models import (
    AvailableSlot,
    RecentActivity,
    StudentBooking,
    StudentStats,
    TimeSlot,
    WeekSchedule,
)

logger = logging.getLogger(__name__)


class ScheduleApi:
    """Wraps the /schedule endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_student_bookings(self) -> list[StudentBooking]:
        data = await self.client.request_data(
            "GET", "/schedule/student-bookings", error_message="Failed to get bookings"
        )
        return [StudentBooking.model_validate(item) for item in data or []]

    async def get_student_stats(self) -> StudentStats:
        data = await self.client.request_data(
            "GET", "/schedule/student-stats", error_message="Failed to get student stats"
        )
        return StudentStats.model_validate(data or {})

    async def get_available_slots(
        self,
        tutor_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list[AvailableSlot]:
        """
        Open slots for a tutor.

        Args:
            tutor_id: Tutor's user id
            start_date: Inclusive lower bound, YYYY-MM-DD
            end_date: Inclusive upper bound, YYYY-MM-DD
        """
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        data = await self.client.request_data(
            "GET",
            f"/schedule/available/{tutor_id}",
            params=params,
            error_message="Failed to get available slots",
        )
        return [AvailableSlot.model_validate(item) for item in data or []]

    async def book_slot(self, slot_id: str) -> Any:
        logger.info("Booking slot %s", slot_id)
        return await self.client.request_data(
            "POST",
            "/schedule/book",
            json={"slotId": slot_id},
            error_message="Failed to book slot",
        )

    async def get_student_activity(self, limit: int = 10) -> list[RecentActivity]:
        data = await self.client.request_data(
            "GET",
            "/schedule/student-activity",
            params={"limit": limit},
            error_message="Failed to get student activity",
        )
        return [RecentActivity.model_validate(item) for item in data or []]

    async def get_lesson_details(self, booking_id: str) -> dict:
        return await self.client.request_data(
            "GET",
            f"/schedule/lesson/{booking_id}",
            error_message="Failed to load lesson",
        )


class TutorScheduleApi:
    """The tutor's side of /schedule: opening and closing slots, the week view, attendance."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def open_slots(self, slots: Iterable[Union[TimeSlot, dict]]) -> None:
        """
        Open slots for booking.

        Args:
            slots: Philippine-time date/time pairs, as TimeSlot or {"date", "time"} dicts
        """
        payload = [TimeSlot.model_validate(slot).to_wire() for slot in slots]
        logger.info("Opening %d slots", len(payload))
        await self.client.request_data(
            "POST",
            "/schedule/open",
            json={"slots": payload},
            error_message="Failed to open slots",
        )

    async def close_slots(self, slot_ids: Iterable[str]) -> None:
        await self.client.request_data(
            "POST",
            "/schedule/close",
            json={"slotIds": list(slot_ids)},
            error_message="Failed to close slots",
        )

    async def get_week_schedule(self, week_offset: int = 0) -> WeekSchedule:
        """Slots of the week `week_offset` weeks from the current one (0 = this week)."""
        data = await self.client.request_data(
            "GET",
            "/schedule/week",
            params={"weekOffset": week_offset},
            error_message="Failed to get schedule",
        )
        return WeekSchedule.model_validate(data or {})

    async def mark_attendance(self, booking_id: str, status: Literal["present", "absent"]) -> None:
        if status not in ("present", "absent"):
            raise ValueError(f"Invalid attendance status: {status!r}")
        await self.client.request_data(
            "POST",
            "/schedule/attendance",
            json={"bookingId": booking_id, "status": status},
            error_message="Failed to mark attendance",
        )
