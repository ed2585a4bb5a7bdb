"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import TimeRange


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    """Common payload of every booking event."""
    booking_id: UUID
    provider_id: int
    service_id: int

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'booking_id': str(self.booking_id),
            'provider_id': self.provider_id,
            'service_id': self.service_id,
        })
        return data


@dataclass(kw_only=True)
class BookingReserved(BookingEvent):
    """
    Event: A slot was reserved (PENDING, or CONFIRMED with auto-accept)

    Triggers:
    - Notify the provider of a new request
    - Send the customer a confirmation
    """
    customer_id: str
    reference: str
    slot: TimeRange
    status: str

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'customer_id': self.customer_id,
            'reference': self.reference,
            'slot': self.slot.as_dict(),
            'status': self.status,
        })
        return data


@dataclass(kw_only=True)
class BookingRescheduled(BookingEvent):
    """Event: Booking moved to another interval, status unchanged"""
    old_slot: TimeRange
    new_slot: TimeRange
    reason: str = ''

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'old_slot': self.old_slot.as_dict(),
            'new_slot': self.new_slot.as_dict(),
            'reason': self.reason,
        })
        return data


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """
    Event: Booking cancelled, its capacity is free again

    Triggers:
    - Notify the other party
    """
    reason: str
    old_status: str
    slot: TimeRange

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'reason': self.reason,
            'old_status': self.old_status,
            'slot': self.slot.as_dict(),
        })
        return data


@dataclass(kw_only=True)
class BookingStatusChanged(BookingEvent):
    """Event: Administrative transition (confirm, reject, complete, no-show)"""
    old_status: str
    new_status: str
    reason: str = ''

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'old_status': self.old_status,
            'new_status': self.new_status,
            'reason': self.reason,
        })
        return data


@dataclass(kw_only=True)
class BookingDetailsUpdated(BookingEvent):
    """Event: Provider changed payment status or notes"""
    changes: dict

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['changes'] = dict(self.changes)
        return data
