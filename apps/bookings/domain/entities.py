"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Aggregate representing one reserved service interval
- BookingStatus: closed set of lifecycle states plus the transition table
- PaymentStatus: Payment state tracking (informational, never processed here)
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import InvalidTransition, PolicyViolation
from shared.domain.value_objects import Money, TimeRange


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (provider accepted, or auto-accept on creation)
    - PENDING -> REJECTED (provider declined)
    - PENDING -> CANCELLED (customer or provider cancelled)
    - CONFIRMED -> COMPLETED (service delivered)
    - CONFIRMED -> CANCELLED
    - CONFIRMED -> NO_SHOW (customer never arrived)

    COMPLETED, CANCELLED, REJECTED and NO_SHOW are terminal.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    REJECTED = 'rejected'
    NO_SHOW = 'no_show'

    @property
    def is_active(self) -> bool:
        """Non-terminal statuses occupy capacity."""
        return self in ACTIVE_STATUSES

    def can_transition_to(self, target: 'BookingStatus') -> bool:
        return target in TRANSITIONS.get(self, frozenset())


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

TRANSITIONS = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
}


class PaymentStatus(Enum):
    """Payment status tracking"""
    PENDING = 'pending'
    PAID = 'paid'
    PARTIALLY_PAID = 'partially_paid'
    REFUNDED = 'refunded'
    FAILED = 'failed'


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    A customer's reservation of one service slot at one provider.

    Key invariants:
    - slot.start < slot.end, both timezone-aware
    - booking_date is the provider-local date of slot.start
    - status only moves along TRANSITIONS
    - a reschedule keeps the status, only the interval moves
    """

    reference: str  # Human-readable code, e.g. CW20261019A1B2C3

    # References
    provider_id: int
    service_id: int
    customer_id: str

    # Interval
    slot: TimeRange
    booking_date: date

    total_price: Money

    # Customer contact information
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    vehicle_info: dict = field(default_factory=dict)
    customer_notes: str = ''
    provider_notes: str = ''

    # Status tracking
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    cancellation_reason: str = ''

    # Timestamps
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def reserve(cls, *, auto_confirm: bool = False, now: datetime | None = None, **fields) -> 'Booking':
        """
        Create a new booking (REQUESTED -> PENDING, or CONFIRMED with auto-accept)

        Events: BookingReserved
        """
        from apps.bookings.domain.events import BookingReserved

        now = now or utcnow()
        booking = cls(created_at=now, updated_at=now, **fields)
        if auto_confirm:
            booking.status = BookingStatus.CONFIRMED
            booking.confirmed_at = now

        booking.add_event(BookingReserved(
            aggregate_id=booking.id,
            booking_id=booking.id,
            provider_id=booking.provider_id,
            service_id=booking.service_id,
            customer_id=booking.customer_id,
            reference=booking.reference,
            slot=booking.slot,
            status=booking.status.value,
        ))
        return booking

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def lock_key(self) -> tuple:
        return (self.provider_id, self.service_id, self.booking_date)

    def transition_to(self, target: BookingStatus, *, reason: str = '', now: datetime | None = None):
        """
        Move to ``target`` if the transition table allows it.

        Events: BookingCancelled for CANCELLED, BookingStatusChanged otherwise
        """
        if not self.status.can_transition_to(target):
            raise InvalidTransition(self.status.value, target.value)

        from apps.bookings.domain.events import BookingCancelled, BookingStatusChanged

        now = now or utcnow()
        previous = self.status
        self.status = target

        if target == BookingStatus.CONFIRMED:
            self.confirmed_at = now
        elif target == BookingStatus.COMPLETED:
            self.completed_at = now
        elif target == BookingStatus.CANCELLED:
            self.cancelled_at = now
            self.cancellation_reason = reason
        elif reason:
            self._append_provider_note(reason)

        self.updated_at = now

        if target == BookingStatus.CANCELLED:
            self.add_event(BookingCancelled(
                aggregate_id=self.id,
                booking_id=self.id,
                provider_id=self.provider_id,
                service_id=self.service_id,
                reason=reason,
                old_status=previous.value,
                slot=self.slot,
            ))
        else:
            self.add_event(BookingStatusChanged(
                aggregate_id=self.id,
                booking_id=self.id,
                provider_id=self.provider_id,
                service_id=self.service_id,
                old_status=previous.value,
                new_status=target.value,
                reason=reason,
            ))

    def cancel(self, reason: str, now: datetime | None = None):
        """
        Cancel booking (PENDING/CONFIRMED -> CANCELLED)

        The reason is mandatory. Capacity is released as soon as the
        new status is saved.
        """
        if not reason or not reason.strip():
            raise PolicyViolation(
                "A cancellation reason is required",
                rule='cancellation_reason_required',
            )
        self.transition_to(BookingStatus.CANCELLED, reason=reason.strip(), now=now)

    def reschedule(self, slot: TimeRange, booking_date: date, reason: str = '', now: datetime | None = None):
        """
        Move the booking to another interval, keeping its status.

        Events: BookingRescheduled
        """
        if not self.is_active:
            raise PolicyViolation(
                f"Cannot reschedule booking with status {self.status.value}",
                rule='reschedule_status',
                details={'current_status': self.status.value},
            )

        from apps.bookings.domain.events import BookingRescheduled

        previous = self.slot
        self.slot = slot
        self.booking_date = booking_date
        if reason:
            self._append_provider_note(f"Reagendado: {reason}")
        self.updated_at = now or utcnow()

        self.add_event(BookingRescheduled(
            aggregate_id=self.id,
            booking_id=self.id,
            provider_id=self.provider_id,
            service_id=self.service_id,
            old_slot=previous,
            new_slot=slot,
            reason=reason,
        ))

    def update_details(
        self,
        *,
        payment_status: PaymentStatus | None = None,
        provider_notes: str | None = None,
        now: datetime | None = None,
    ):
        """
        Provider bookkeeping: payment status and notes.

        Status and interval stay as they are, so capacity is unaffected.

        Events: BookingDetailsUpdated
        """
        from apps.bookings.domain.events import BookingDetailsUpdated

        changed = {}
        if payment_status is not None and payment_status != self.payment_status:
            changed['payment_status'] = payment_status.value
            self.payment_status = payment_status
        if provider_notes is not None and provider_notes != self.provider_notes:
            changed['provider_notes'] = provider_notes
            self.provider_notes = provider_notes
        if not changed:
            return

        self.updated_at = now or utcnow()
        self.add_event(BookingDetailsUpdated(
            aggregate_id=self.id,
            booking_id=self.id,
            provider_id=self.provider_id,
            service_id=self.service_id,
            changes=changed,
        ))

    def _append_provider_note(self, note: str):
        self.provider_notes = f"{self.provider_notes}\n{note}".strip() if self.provider_notes else note

    def __str__(self):
        return f"Booking {self.reference} ({self.status.value})"
