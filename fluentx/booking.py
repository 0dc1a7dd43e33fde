"""
Lesson booking flow.

Tutors publish slots in Philippine time (12-hour clock); students see them
in Korean time (24-hour clock). The conversion adds one hour and keeps the
schedule date, even when the hour wraps past midnight.
"""

import inspect
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Optional

from .api.schedule import ScheduleApi
from .errors import ApiError
from .models import AvailableSlot

logger = logging.getLogger(__name__)

TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
LOOKAHEAD_DAYS = 7

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def convert_to_korean_time(ph_date: str, ph_time: str) -> tuple[str, str]:
    """
    Convert a PHT slot ("6:00 PM") to its KST label ("19:00").

    Returns (date, time). The date is returned unchanged; input that isn't
    a 12-hour time comes back as is.
    """
    match = TIME_12H.match(ph_time.strip())
    if not match:
        return ph_date, ph_time
    hours = int(match.group(1))
    minutes = match.group(2)
    period = match.group(3).upper()
    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0
    hours += 1
    if hours >= 24:
        hours -= 24
    return ph_date, f"{hours:02d}:{minutes}"


def format_date(date_string: str) -> str:
    """'2025-01-10' -> 'Friday, Jan 10'"""
    day = date.fromisoformat(date_string)
    return f"{DAY_NAMES[day.weekday()]}, {MONTH_NAMES[day.month - 1]} {day.day}"


def group_slots_by_date(slots: list[AvailableSlot]) -> dict[str, list[AvailableSlot]]:
    """Group slots by their date, in the order dates first appear."""
    groups: dict[str, list[AvailableSlot]] = {}
    for slot in slots:
        groups.setdefault(slot.date, []).append(slot)
    return groups


@dataclass
class SlotOption:
    slot: AvailableSlot
    time_label: str


@dataclass
class DateGroup:
    date: str
    label: str
    slots: list[SlotOption] = field(default_factory=list)


class BookingFlow:
    """State of the booking dialog for one tutor."""

    def __init__(
        self,
        schedule_api: ScheduleApi,
        tutor_id: str,
        tutor_name: str = "",
        pre_selected_date: Optional[str] = None,
        pre_selected_time: Optional[str] = None,
        on_booked: Optional[Callable[[AvailableSlot], Any]] = None,
        today: Optional[date] = None,
    ):
        """
        Args:
            schedule_api: Schedule endpoints
            tutor_id: Tutor whose slots are offered
            tutor_name: Display name for confirmation text
            pre_selected_date: KST date (YYYY-MM-DD) to select once slots load
            pre_selected_time: KST time (HH:MM) to select once slots load
            on_booked: Called with the slot after a successful booking
            today: First day of the window; defaults to the current date
        """
        self.schedule_api = schedule_api
        self.tutor_id = tutor_id
        self.tutor_name = tutor_name
        self.pre_selected_date = pre_selected_date
        self.pre_selected_time = pre_selected_time
        self.on_booked = on_booked
        self._today = today
        self._reset()

    def _reset(self) -> None:
        self.slots: list[AvailableSlot] = []
        self.selected: Optional[AvailableSlot] = None
        self.loading = False
        self.booking = False
        self.booking_success = False
        self.error: Optional[str] = None
        self.is_open = False

    def window(self) -> tuple[str, str]:
        start = self._today or date.today()
        end = start + timedelta(days=LOOKAHEAD_DAYS)
        return start.isoformat(), end.isoformat()

    async def open(self) -> None:
        self.is_open = True
        await self.fetch_slots()

    async def retry(self) -> None:
        await self.fetch_slots()

    async def fetch_slots(self) -> None:
        self.loading = True
        self.error = None
        start, end = self.window()
        try:
            self.slots = await self.schedule_api.get_available_slots(self.tutor_id, start, end)
            logger.info("Fetched %d available slots for tutor %s", len(self.slots), self.tutor_id)
        except ApiError as e:
            self.error = e.message or "Failed to load available slots"
        finally:
            self.loading = False
        if self.selected is not None and all(
            slot.slot_id != self.selected.slot_id for slot in self.slots
        ):
            self.selected = None
        self._apply_pre_selection()

    def _apply_pre_selection(self) -> None:
        if not (self.pre_selected_date and self.pre_selected_time and self.slots):
            return
        for slot in self.slots:
            if convert_to_korean_time(slot.date, slot.time) == (
                self.pre_selected_date,
                self.pre_selected_time,
            ):
                self.selected = slot
                return

    def date_groups(self) -> list[DateGroup]:
        groups = []
        for slot_date, slots in group_slots_by_date(self.slots).items():
            options = [
                SlotOption(slot=slot, time_label=convert_to_korean_time(slot.date, slot.time)[1])
                for slot in slots
            ]
            groups.append(DateGroup(date=slot_date, label=format_date(slot_date), slots=options))
        return groups

    def select(self, slot_id: str) -> AvailableSlot:
        for slot in self.slots:
            if slot.slot_id == slot_id:
                self.selected = slot
                return slot
        raise KeyError(slot_id)

    def summary(self) -> Optional[str]:
        """Confirmation line for the selected slot, e.g. 'Friday, Jan 10 at 19:00 KST (25 min)'."""
        if self.selected is None:
            return None
        slot = self.selected
        time_label = convert_to_korean_time(slot.date, slot.time)[1]
        return f"{format_date(slot.date)} at {time_label} KST ({slot.duration_minutes} min)"

    async def confirm(self) -> bool:
        """Book the selected slot. Concurrent or repeated calls book at most once."""
        if self.selected is None or self.booking or self.booking_success:
            return False
        slot = self.selected
        self.booking = True
        self.error = None
        try:
            await self.schedule_api.book_slot(slot.slot_id)
        except ApiError as e:
            self.error = e.message or "Failed to book slot"
            return False
        finally:
            self.booking = False
        self.booking_success = True
        if self.on_booked is not None:
            result = self.on_booked(slot)
            if inspect.isawaitable(result):
                await result
        return True

    def close(self) -> bool:
        """Close and reset. Refused while a booking is in flight or after success."""
        if self.booking or self.booking_success:
            return False
        self._reset()
        return True

    def finish(self) -> None:
        """Dismiss the success state once the confirmation has been shown."""
        if self.booking_success:
            self._reset()
