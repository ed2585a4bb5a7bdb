"""
Availability Resolver

Combines generated slots with the booking ledger. A pure read: nothing
is cached and nothing is written, so two calls without a booking write
in between return the same answer.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from shared.domain.base import ValueObject, utcnow
from shared.domain.exceptions import NotFoundError, PolicyViolation
from shared.domain.value_objects import Money, TimeRange
from apps.bookings.domain.slots import SlotGenerator


@dataclass(frozen=True)
class BookableService(ValueObject):
    """Read-only snapshot of a service and the provider flags the engine needs."""
    service_id: int
    provider_id: int
    name: str
    duration_minutes: int
    max_capacity: int = 1
    buffer_minutes: int = 0
    price: Money = Money(Decimal('0'))
    min_advance_hours: Optional[int] = None
    max_advance_hours: Optional[int] = None
    is_available: bool = True
    provider_bookable: bool = True
    auto_accept: bool = False

    @property
    def accepts_bookings(self) -> bool:
        return self.is_available and self.provider_bookable

    def advance_window_violation(self, start: datetime, now: datetime) -> Optional[PolicyViolation]:
        """The violated bound for a slot starting at ``start``, or None."""
        if start < now:
            return PolicyViolation(
                "Slot starts in the past",
                rule='slot_in_past',
                details={'start_time': start.isoformat(), 'now': now.isoformat()},
            )
        if self.min_advance_hours is not None and start < now + timedelta(hours=self.min_advance_hours):
            return PolicyViolation(
                f"Bookings must be made at least {self.min_advance_hours} hours in advance",
                rule='min_advance_booking',
                details={
                    'start_time': start.isoformat(),
                    'min_advance_hours': self.min_advance_hours,
                    'earliest_start': (now + timedelta(hours=self.min_advance_hours)).isoformat(),
                },
            )
        if self.max_advance_hours is not None and start > now + timedelta(hours=self.max_advance_hours):
            return PolicyViolation(
                f"Bookings can be made at most {self.max_advance_hours} hours in advance",
                rule='max_advance_booking',
                details={
                    'start_time': start.isoformat(),
                    'max_advance_hours': self.max_advance_hours,
                    'latest_start': (now + timedelta(hours=self.max_advance_hours)).isoformat(),
                },
            )
        return None


@dataclass(frozen=True)
class SlotAvailability(ValueObject):
    slot: TimeRange
    available: bool
    capacity_remaining: int

    def to_dict(self) -> dict:
        return {
            'start_time': self.slot.start.isoformat(),
            'end_time': self.slot.end.isoformat(),
            'available': self.available,
            'capacity_remaining': self.capacity_remaining,
        }


def count_overlaps(slot: TimeRange, intervals: Iterable[TimeRange], buffer_minutes: int = 0) -> int:
    """
    Number of ``intervals`` overlapping ``slot``.

    Every interval, the candidate included, is extended by the buffer at
    its end: [start, end + buffer).
    """
    candidate = slot.padded(buffer_minutes)
    return sum(1 for interval in intervals if candidate.overlaps_with(interval.padded(buffer_minutes)))


class AvailabilityResolver:
    """
    resolve(provider, service, date) -> chronological SlotAvailability list

    Slots starting before ``now`` or outside the service's advance
    window are dropped. ``available`` is ``overlaps < max_capacity``,
    and always False while the service or its provider does not accept
    bookings. ``capacity_remaining`` is reported either way.
    """

    def __init__(self, slot_generator: SlotGenerator, catalog, ledger):
        self.slot_generator = slot_generator
        self.catalog = catalog
        self.ledger = ledger

    def service_for(self, provider_id: int, service_id: int) -> BookableService:
        service = self.catalog.get_service(service_id)
        if service.provider_id != provider_id:
            raise NotFoundError(
                f"Service {service_id} not found for provider {provider_id}",
                details={'provider_id': provider_id, 'service_id': service_id},
            )
        return service

    def resolve(self, provider_id: int, service_id: int, day: date, now: datetime | None = None) -> List[SlotAvailability]:
        return self.resolve_for(self.service_for(provider_id, service_id), day, now=now)

    def resolve_for(self, service: BookableService, day: date, now: datetime | None = None) -> List[SlotAvailability]:
        """Same as ``resolve`` for an already loaded service snapshot."""
        now = now or utcnow()
        provider_id, service_id = service.provider_id, service.service_id
        slots = [
            slot
            for slot in self.slot_generator.generate(provider_id, day, service.duration_minutes)
            if service.advance_window_violation(slot.start, now) is None
        ]
        if not slots:
            return []

        window = TimeRange(slots[0].start, slots[-1].end).padded(service.buffer_minutes)
        intervals = self.ledger.active_intervals(
            provider_id, service_id, window, buffer_minutes=service.buffer_minutes
        )

        bookable = service.accepts_bookings
        result = []
        for slot in slots:
            used = count_overlaps(slot, intervals, service.buffer_minutes)
            remaining = max(service.max_capacity - used, 0)
            result.append(SlotAvailability(
                slot=slot,
                available=bookable and remaining > 0,
                capacity_remaining=remaining,
            ))
        return result
