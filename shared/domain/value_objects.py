"""
Common Value Objects

- Money: monetary amount with currency
- TimeRange: half-open interval [start, end) between two aware instants
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('CLP', 'USD', 'EUR')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Immutable, supports addition and subtraction within one currency.
    """
    amount: Decimal
    currency: str = 'CLP'

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    @classmethod
    def zero(cls, currency: str = 'CLP') -> 'Money':
        return cls(Decimal('0'), currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    Represents [start, end): start is inclusive, end is exclusive, so
    back-to-back ranges do not overlap. Both ends must be timezone-aware.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeRange requires timezone-aware datetimes")
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start.isoformat()}) must be before end ({self.end.isoformat()})")

    @classmethod
    def starting_at(cls, start: datetime, minutes: int) -> 'TimeRange':
        return cls(start, start + timedelta(minutes=minutes))

    def overlaps_with(self, other: 'TimeRange') -> bool:
        """
        Overlap formula: start1 < end2 AND start2 < end1

            [09:00, 10:00) vs [09:30, 10:30) -> True
            [09:00, 10:00) vs [10:00, 11:00) -> False (adjacent)
        """
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")
        return self.start < other.end and other.start < self.end

    def padded(self, minutes: int) -> 'TimeRange':
        """Same start, end pushed back by a buffer."""
        if minutes <= 0:
            return self
        return TimeRange(self.start, self.end + timedelta(minutes=minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def as_dict(self) -> dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"
