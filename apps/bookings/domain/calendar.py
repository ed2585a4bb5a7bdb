"""
Operating Calendar

Answers "when is this provider open on this date": a dated override
wins over the weekly default, ``None`` means closed.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DayHours(ValueObject):
    """Opening interval of one day, in provider-local wall-clock time."""
    open: time
    close: time

    def __post_init__(self):
        if self.open >= self.close:
            raise ValueError(f"Opening time {self.open} must be before closing time {self.close}")


@dataclass(frozen=True, eq=False)
class WeeklySchedule(ValueObject):
    """
    Weekly defaults (0=Monday ... 6=Sunday) plus dated overrides.

    A weekday missing from ``weekly`` is closed. An override mapped to
    ``None`` closes that date whatever the weekday says.
    """
    provider_id: int
    timezone: str
    weekly: Dict[int, Optional[DayHours]] = field(default_factory=dict)
    overrides: Dict[date, Optional[DayHours]] = field(default_factory=dict)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def hours_for(self, day: date) -> Optional[DayHours]:
        if day in self.overrides:
            return self.overrides[day]
        return self.weekly.get(day.weekday())


class OperatingCalendar:
    """
    Resolves provider hours through a calendar repository.

    The repository raises NotFoundError for an unknown provider and
    returns a WeeklySchedule whose overrides cover the requested dates.
    """

    def __init__(self, calendar_repo):
        self.calendar_repo = calendar_repo

    def schedule(self, provider_id: int, start_date: date, end_date: date | None = None) -> WeeklySchedule:
        return self.calendar_repo.get_schedule(provider_id, start_date, end_date or start_date)

    def hours_for(self, provider_id: int, day: date) -> Optional[DayHours]:
        return self.schedule(provider_id, day).hours_for(day)
