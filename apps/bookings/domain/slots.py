"""
Slot Generator

Slots are aligned to the opening time and step by the service
duration: no gaps, no overlap, and the last slot must end by closing
time. With 09:00-19:00 and 60 minutes that is 09:00, 10:00 ... 18:00.
A 45 minute service on the same day stops at 18:00-18:45, the 15 minute
remainder is not offered.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterator, List, Optional

from shared.domain.value_objects import TimeRange
from apps.bookings.domain.calendar import DayHours, OperatingCalendar


def iter_slots(hours: Optional[DayHours], day: date, duration_minutes: int, tz: tzinfo) -> Iterator[TimeRange]:
    if duration_minutes <= 0:
        raise ValueError(f"Duration must be positive, got {duration_minutes}")
    if hours is None:
        return

    step = timedelta(minutes=duration_minutes)
    start = datetime.combine(day, hours.open, tzinfo=tz)
    close = datetime.combine(day, hours.close, tzinfo=tz)
    while start + step <= close:
        yield TimeRange(start, start + step)
        start += step


def generate_slots(hours: Optional[DayHours], day: date, duration_minutes: int, tz: tzinfo) -> List[TimeRange]:
    """Candidate slots for one day, chronological. Empty when closed."""
    return list(iter_slots(hours, day, duration_minutes, tz))


class SlotGenerator:
    """Looks up the day's hours and timezone, then generates slots."""

    def __init__(self, calendar: OperatingCalendar):
        self.calendar = calendar

    def generate(self, provider_id: int, day: date, duration_minutes: int) -> List[TimeRange]:
        schedule = self.calendar.schedule(provider_id, day)
        return generate_slots(schedule.hours_for(day), day, duration_minutes, schedule.tzinfo)

    def find(self, provider_id: int, requested: TimeRange, duration_minutes: int) -> Optional[TimeRange]:
        """
        Return the generated slot equal to ``requested``, or None.

        The requested interval is compared as instants, so a client may
        send it in UTC or any other offset. The returned slot carries the
        provider timezone, ``slot.start.date()`` is the provider-local date.
        """
        # the local date is at most one day away from the date in the request's offset
        around = requested.start.date()
        schedule = self.calendar.schedule(provider_id, around - timedelta(days=1), around + timedelta(days=1))
        day = requested.start.astimezone(schedule.tzinfo).date()
        for slot in iter_slots(schedule.hours_for(day), day, duration_minutes, schedule.tzinfo):
            if slot == requested:
                return slot
            if slot.start > requested.start:
                break
        return None
