"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Reserve a slot
- RescheduleBookingCommand: Move a booking to another slot
- CancelBookingCommand: Cancel a booking and release its capacity
- ChangeBookingStatusCommand: Administrative transition (confirm, reject, complete, no-show)
- UpdateBookingDetailsCommand: Payment status and provider notes
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID
import logging

from django.conf import settings

from shared.application.locks import KeyedLockRegistry, slot_locks
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import utcnow
from shared.domain.exceptions import NotFoundError, PolicyViolation, SlotConflict
from shared.domain.value_objects import TimeRange
from apps.bookings.domain.availability import BookableService
from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus
from apps.bookings.domain.slots import SlotGenerator

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to reserve a slot

    ``end_time`` is optional; when given it must equal
    ``start_time + duration`` of the service.
    """
    provider_id: int
    service_id: int
    customer_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    customer_name: str = ''
    customer_phone: str = ''
    customer_email: str = ''
    vehicle_info: dict = field(default_factory=dict)
    customer_notes: str = ''


@dataclass
class RescheduleBookingCommand:
    """Command to move a booking to a new slot"""
    booking_id: UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    reason: str = ''


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: UUID
    reason: str
    by_provider: bool = False  # provider-side cancellations skip the notice window


@dataclass
class ChangeBookingStatusCommand:
    """Command for an administrative status change"""
    booking_id: UUID
    status: BookingStatus
    reason: str = ''


@dataclass
class UpdateBookingDetailsCommand:
    """Command for provider bookkeeping, ``None`` leaves a field as it is"""
    booking_id: UUID
    payment_status: Optional[PaymentStatus] = None
    provider_notes: Optional[str] = None


# ===== Policies =====

@dataclass(frozen=True)
class CancellationWindowPolicy:
    """
    Customers must cancel at least ``min_notice_hours`` before the start.

    ``None`` disables the rule.
    """
    min_notice_hours: Optional[int] = None

    @classmethod
    def from_settings(cls) -> 'CancellationWindowPolicy':
        scheduling = getattr(settings, 'SCHEDULING', {})
        return cls(scheduling.get('MIN_CANCELLATION_NOTICE_HOURS'))

    def check(self, booking: Booking, now: datetime):
        if self.min_notice_hours is None:
            return
        deadline = booking.slot.start - timedelta(hours=self.min_notice_hours)
        if now > deadline:
            raise PolicyViolation(
                f"Bookings can only be cancelled up to {self.min_notice_hours} hours before the start",
                rule='cancellation_window',
                details={
                    'min_notice_hours': self.min_notice_hours,
                    'deadline': deadline.isoformat(),
                    'start_time': booking.slot.start.isoformat(),
                },
            )


# ===== Command Handlers =====

class SlotHandlerMixin:
    """Shared checks for handlers that place a booking on a slot."""

    catalog = None
    slot_generator: SlotGenerator = None

    def _service(self, provider_id: int, service_id: int) -> BookableService:
        service = self.catalog.get_service(service_id)
        if service.provider_id != provider_id:
            raise NotFoundError(
                f"Service {service_id} not found for provider {provider_id}",
                details={'provider_id': provider_id, 'service_id': service_id},
            )
        return service

    def _resolve_slot(
        self,
        service: BookableService,
        start_time: datetime,
        end_time: Optional[datetime],
        now: datetime,
    ) -> TimeRange:
        """
        Match the requested interval against the generated slots.

        Raises PolicyViolation with the offending bound when the interval
        is not a slot or falls outside the advance-booking window.
        """
        requested = TimeRange.starting_at(start_time, service.duration_minutes)
        if end_time is not None and end_time != requested.end:
            raise PolicyViolation(
                f"Service {service.name} lasts {service.duration_minutes} minutes",
                rule='slot_duration',
                details={
                    'duration_minutes': service.duration_minutes,
                    'expected_end_time': requested.end.isoformat(),
                    'end_time': end_time.isoformat(),
                },
            )

        slot = self.slot_generator.find(service.provider_id, requested, service.duration_minutes)
        if slot is None:
            raise PolicyViolation(
                "Requested interval is not an offered slot",
                rule='slot_not_offered',
                details={'requested': requested.as_dict()},
            )

        violation = service.advance_window_violation(slot.start, now)
        if violation is not None:
            raise violation
        return slot

    @staticmethod
    def _conflict(slot: TimeRange, service: BookableService, overlapping: int) -> SlotConflict:
        return SlotConflict(
            "Slot is fully booked, fetch availability again and pick another slot",
            details={
                'conflicting_interval': slot.as_dict(),
                'max_capacity': service.max_capacity,
                'overlapping_bookings': overlapping,
            },
        )


class CreateBookingHandler(SlotHandlerMixin):
    """
    Handler for CreateBooking command

    Strategy:
    1. Validate provider, service, slot grid and advance window (no lock)
    2. Take the in-process lock for (provider, service, date)
    3. Start database transaction, lock the BookingSlotLock row
    4. Re-count overlapping non-terminal bookings
    5. Insert PENDING (CONFIRMED with auto-accept) or raise SlotConflict
    6. Commit, publish events after commit
    """

    def __init__(
        self,
        ledger,
        catalog,
        slot_generator: SlotGenerator,
        uow_factory: Callable = DjangoUnitOfWork,
        locks: KeyedLockRegistry = slot_locks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.slot_generator = slot_generator
        self.uow_factory = uow_factory
        self.locks = locks
        self.clock = clock

    def handle(self, command: CreateBookingCommand) -> Booking:
        """
        Handle booking creation

        Returns: Created Booking aggregate

        Raises:
            NotFoundError: unknown provider or service
            PolicyViolation: provider or service not bookable, bad interval
            SlotConflict: capacity exhausted at commit time
        """
        logger.info(
            f"Creating booking for provider {command.provider_id}, service {command.service_id}, "
            f"customer {command.customer_id} at {command.start_time.isoformat()}"
        )

        service = self._service(command.provider_id, command.service_id)
        if not service.provider_bookable:
            raise PolicyViolation(
                f"Provider {command.provider_id} is not accepting bookings",
                rule='provider_not_accepting_bookings',
                details={'provider_id': command.provider_id},
            )
        if not service.is_available:
            raise PolicyViolation(
                f"Service {service.name} is not available",
                rule='service_unavailable',
                details={'service_id': service.service_id},
            )

        now = self.clock()
        slot = self._resolve_slot(service, command.start_time, command.end_time, now)
        key = (service.provider_id, service.service_id, slot.start.date())

        with self.locks.hold([key]):
            with self.uow_factory() as uow:
                self.ledger.lock([key])

                overlapping = self.ledger.count_overlapping(
                    service.provider_id,
                    service.service_id,
                    slot,
                    buffer_minutes=service.buffer_minutes,
                )
                if overlapping >= service.max_capacity:
                    logger.warning(
                        f"Slot conflict for provider {service.provider_id}, service {service.service_id} "
                        f"at {slot}: {overlapping}/{service.max_capacity}"
                    )
                    raise self._conflict(slot, service, overlapping)

                booking = Booking.reserve(
                    auto_confirm=service.auto_accept,
                    now=now,
                    reference=self.ledger.next_reference(),
                    provider_id=service.provider_id,
                    service_id=service.service_id,
                    customer_id=command.customer_id,
                    slot=slot,
                    booking_date=slot.start.date(),
                    total_price=service.price,
                    customer_name=command.customer_name,
                    customer_phone=command.customer_phone,
                    customer_email=command.customer_email,
                    vehicle_info=dict(command.vehicle_info or {}),
                    customer_notes=command.customer_notes,
                )

                uow.collect_events(booking)
                self.ledger.add(booking)

        logger.info(f"Booking created successfully: {booking.reference} (ID: {booking.id}, {booking.status.value})")
        return booking


class RescheduleBookingHandler(SlotHandlerMixin):
    """
    Handler for moving a booking

    Old and new keys are locked together in sorted order. The overlap
    count excludes the booking itself, so moving within its own interval
    never conflicts with itself. On conflict nothing changes.
    """

    def __init__(
        self,
        ledger,
        catalog,
        slot_generator: SlotGenerator,
        uow_factory: Callable = DjangoUnitOfWork,
        locks: KeyedLockRegistry = slot_locks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.slot_generator = slot_generator
        self.uow_factory = uow_factory
        self.locks = locks
        self.clock = clock

    def handle(self, command: RescheduleBookingCommand) -> Booking:
        logger.info(f"Rescheduling booking {command.booking_id} to {command.start_time.isoformat()}")

        current = self.ledger.get(command.booking_id)
        if not current.is_active:
            raise PolicyViolation(
                f"Cannot reschedule booking with status {current.status.value}",
                rule='reschedule_status',
                details={'current_status': current.status.value},
            )

        service = self._service(current.provider_id, current.service_id)
        now = self.clock()
        slot = self._resolve_slot(service, command.start_time, command.end_time, now)
        keys = {current.lock_key, (service.provider_id, service.service_id, slot.start.date())}

        with self.locks.hold(keys):
            with self.uow_factory() as uow:
                self.ledger.lock(keys)
                booking = self.ledger.get(command.booking_id, lock=True)

                overlapping = self.ledger.count_overlapping(
                    service.provider_id,
                    service.service_id,
                    slot,
                    buffer_minutes=service.buffer_minutes,
                    exclude_booking_id=booking.id,
                )
                if overlapping >= service.max_capacity:
                    logger.warning(f"Reschedule of {booking.reference} to {slot} rejected: slot is full")
                    raise self._conflict(slot, service, overlapping)

                booking.reschedule(slot, slot.start.date(), reason=command.reason, now=now)
                uow.collect_events(booking)
                self.ledger.save(booking)

        logger.info(f"Booking {booking.reference} rescheduled to {slot}")
        return booking


class CancelBookingHandler:
    """Handler for cancelling booking"""

    def __init__(
        self,
        ledger,
        uow_factory: Callable = DjangoUnitOfWork,
        policy: Optional[CancellationWindowPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.uow_factory = uow_factory
        self.policy = policy if policy is not None else CancellationWindowPolicy.from_settings()
        self.clock = clock

    def handle(self, command: CancelBookingCommand) -> Booking:
        """Cancel booking, its capacity is released on commit"""
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        now = self.clock()
        with self.uow_factory() as uow:
            booking = self.ledger.get(command.booking_id, lock=True)

            if not command.by_provider and booking.is_active:
                self.policy.check(booking, now)

            booking.cancel(command.reason, now=now)

            uow.collect_events(booking)
            self.ledger.save(booking)

        logger.info(f"Booking {booking.reference} cancelled successfully")
        return booking


class ChangeBookingStatusHandler:
    """Handler for administrative status changes"""

    def __init__(
        self,
        ledger,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.uow_factory = uow_factory
        self.clock = clock

    def handle(self, command: ChangeBookingStatusCommand) -> Booking:
        logger.info(f"Changing booking {command.booking_id} status to {command.status.value}")

        with self.uow_factory() as uow:
            booking = self.ledger.get(command.booking_id, lock=True)
            previous = booking.status

            if command.status == BookingStatus.CANCELLED:
                booking.cancel(command.reason, now=self.clock())
            else:
                booking.transition_to(command.status, reason=command.reason, now=self.clock())

            uow.collect_events(booking)
            self.ledger.save(booking)

        logger.info(f"Booking {booking.reference} moved from {previous.value} to {booking.status.value}")
        return booking


class UpdateBookingDetailsHandler:
    """Handler for payment status and provider notes, never touches status or interval"""

    def __init__(
        self,
        ledger,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ledger = ledger
        self.uow_factory = uow_factory
        self.clock = clock

    def handle(self, command: UpdateBookingDetailsCommand) -> Booking:
        logger.info(f"Updating details of booking {command.booking_id}")

        with self.uow_factory() as uow:
            booking = self.ledger.get(command.booking_id, lock=True)
            booking.update_details(
                payment_status=command.payment_status,
                provider_notes=command.provider_notes,
                now=self.clock(),
            )

            uow.collect_events(booking)
            self.ledger.save(booking)

        logger.info(f"Booking {booking.reference} details updated, payment {booking.payment_status.value}")
        return booking
