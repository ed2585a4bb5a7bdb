"""Tests for the booking command handlers against in-memory repositories."""

from __future__ import annotations

import threading
from datetime import timedelta
from uuid import uuid4

from django.test import SimpleTestCase

from shared.application.locks import KeyedLockRegistry
from shared.domain.exceptions import InvalidTransition, NotFoundError, PolicyViolation, SlotConflict
from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CancellationWindowPolicy,
    ChangeBookingStatusCommand,
    ChangeBookingStatusHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    RescheduleBookingCommand,
    RescheduleBookingHandler,
    UpdateBookingDetailsCommand,
    UpdateBookingDetailsHandler,
)
from apps.bookings.domain.calendar import OperatingCalendar
from apps.bookings.domain.entities import BookingStatus, PaymentStatus
from apps.bookings.domain.slots import SlotGenerator

from .fakes import (
    DAY,
    NOW,
    PROVIDER_ID,
    SERVICE_ID,
    FakeUnitOfWork,
    InMemoryBookingLedger,
    InMemoryCalendarRepository,
    InMemoryServiceCatalog,
    bookable_service,
    fixed_clock,
    local,
    weekly_schedule,
)


class HandlerTestCase(SimpleTestCase):
    service_fields: dict = {}

    def setUp(self) -> None:
        self.ledger = InMemoryBookingLedger()
        self.uow = FakeUnitOfWork()
        self.locks = KeyedLockRegistry()
        self.catalog = InMemoryServiceCatalog(bookable_service(**self.service_fields))
        self.slot_generator = SlotGenerator(OperatingCalendar(InMemoryCalendarRepository(weekly_schedule())))

    def create_handler(self, clock=None) -> CreateBookingHandler:
        return CreateBookingHandler(
            self.ledger,
            self.catalog,
            self.slot_generator,
            uow_factory=self.uow,
            locks=self.locks,
            clock=clock or fixed_clock(),
        )

    def reschedule_handler(self, clock=None) -> RescheduleBookingHandler:
        return RescheduleBookingHandler(
            self.ledger,
            self.catalog,
            self.slot_generator,
            uow_factory=self.uow,
            locks=self.locks,
            clock=clock or fixed_clock(),
        )

    def cancel_handler(self, policy=None, clock=None) -> CancelBookingHandler:
        return CancelBookingHandler(
            self.ledger,
            uow_factory=self.uow,
            policy=policy or CancellationWindowPolicy(None),
            clock=clock or fixed_clock(),
        )

    def status_handler(self) -> ChangeBookingStatusHandler:
        return ChangeBookingStatusHandler(self.ledger, uow_factory=self.uow, clock=fixed_clock())

    def book(self, hour: int, minute: int = 0, customer_id: str = "42", **kwargs):
        start = local(DAY, hour, minute)
        return self.create_handler().handle(
            CreateBookingCommand(
                provider_id=kwargs.pop("provider_id", PROVIDER_ID),
                service_id=kwargs.pop("service_id", SERVICE_ID),
                customer_id=customer_id,
                start_time=start,
                **kwargs,
            )
        )


class CreateBookingTests(HandlerTestCase):
    def test_reserves_pending_booking(self) -> None:
        booking = self.book(10, customer_name="Ana", vehicle_info={"plate": "ABCD12"})

        stored = self.ledger.get(booking.id)
        self.assertEqual(stored.status, BookingStatus.PENDING)
        self.assertEqual(stored.slot.start, local(DAY, 10))
        self.assertEqual(stored.slot.end, local(DAY, 11))
        self.assertEqual(stored.booking_date, DAY)
        self.assertEqual(stored.customer_name, "Ana")
        self.assertEqual(stored.vehicle_info, {"plate": "ABCD12"})
        self.assertTrue(stored.reference.startswith("CW"))
        self.assertEqual(self.ledger.locked_keys, [((PROVIDER_ID, SERVICE_ID, DAY),)])
        self.assertEqual(self.uow.event_types, ["BookingReserved"])

    def test_auto_accept_confirms_immediately(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(auto_accept=True))

        booking = self.book(10)

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.confirmed_at, NOW)

    def test_end_time_must_match_duration(self) -> None:
        with self.assertRaises(PolicyViolation) as ctx:
            self.book(10, end_time=local(DAY, 10, 30))

        self.assertEqual(ctx.exception.rule, "slot_duration")
        self.assertEqual(self.ledger.bookings, {})

    def test_matching_end_time_is_accepted(self) -> None:
        booking = self.book(10, end_time=local(DAY, 11))

        self.assertEqual(booking.slot.end, local(DAY, 11))

    def test_interval_must_be_a_generated_slot(self) -> None:
        with self.assertRaises(PolicyViolation) as ctx:
            self.book(10, 30)

        self.assertEqual(ctx.exception.rule, "slot_not_offered")
        self.assertEqual(ctx.exception.code, "policy_violation")

    def test_slot_in_the_past(self) -> None:
        handler = self.create_handler(clock=fixed_clock(local(DAY, 12)))

        with self.assertRaises(PolicyViolation) as ctx:
            handler.handle(CreateBookingCommand(PROVIDER_ID, SERVICE_ID, "42", local(DAY, 10)))

        self.assertEqual(ctx.exception.rule, "slot_in_past")

    def test_min_advance_booking(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(min_advance_hours=3))
        handler = self.create_handler(clock=fixed_clock(local(DAY, 8)))

        with self.assertRaises(PolicyViolation) as ctx:
            handler.handle(CreateBookingCommand(PROVIDER_ID, SERVICE_ID, "42", local(DAY, 10)))

        self.assertEqual(ctx.exception.rule, "min_advance_booking")
        self.assertIn("earliest_start", ctx.exception.details)

    def test_max_advance_booking(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(max_advance_hours=24))

        with self.assertRaises(PolicyViolation) as ctx:
            self.book(10)

        self.assertEqual(ctx.exception.rule, "max_advance_booking")

    def test_provider_not_accepting_bookings(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(provider_bookable=False))

        with self.assertRaises(PolicyViolation) as ctx:
            self.book(10)

        self.assertEqual(ctx.exception.rule, "provider_not_accepting_bookings")

    def test_unavailable_service(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(is_available=False))

        with self.assertRaises(PolicyViolation) as ctx:
            self.book(10)

        self.assertEqual(ctx.exception.rule, "service_unavailable")

    def test_unknown_service_and_provider_mismatch(self) -> None:
        with self.assertRaises(NotFoundError):
            self.book(10, service_id=SERVICE_ID + 1)
        with self.assertRaises(NotFoundError):
            self.book(10, provider_id=PROVIDER_ID + 1)

    def test_full_slot_raises_conflict(self) -> None:
        self.book(10)

        with self.assertRaises(SlotConflict) as ctx:
            self.book(10, customer_id="43")

        details = ctx.exception.details
        self.assertEqual(details["conflicting_interval"]["start"], local(DAY, 10).isoformat())
        self.assertEqual(details["max_capacity"], 1)
        self.assertEqual(details["overlapping_bookings"], 1)
        self.assertEqual(len(self.ledger.bookings), 1)
        self.assertEqual(self.uow.rollbacks, 1)
        self.assertEqual(self.uow.event_types, ["BookingReserved"])

    def test_back_to_back_slots_do_not_conflict(self) -> None:
        self.book(10)
        self.book(11)

        self.assertEqual(len(self.ledger.bookings), 2)

    def test_buffer_blocks_the_next_slot(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(buffer_minutes=15))
        self.book(10)

        with self.assertRaises(SlotConflict):
            self.book(11)
        self.book(12)

    def test_capacity_allows_concurrent_bookings(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(max_capacity=2))

        self.book(10)
        self.book(10, customer_id="43")
        with self.assertRaises(SlotConflict):
            self.book(10, customer_id="44")

    def test_concurrent_requests_for_last_slot(self) -> None:
        self.ledger.delay = 0.005
        threads_count = 8
        barrier = threading.Barrier(threads_count)
        outcomes = []
        outcomes_lock = threading.Lock()
        handler = self.create_handler()

        def attempt(customer_id: str) -> None:
            barrier.wait()
            try:
                handler.handle(CreateBookingCommand(PROVIDER_ID, SERVICE_ID, customer_id, local(DAY, 10)))
                outcome = "booked"
            except SlotConflict:
                outcome = "conflict"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(str(n),)) for n in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(outcomes.count("booked"), 1)
        self.assertEqual(outcomes.count("conflict"), threads_count - 1)
        self.assertEqual(len(self.ledger.bookings), 1)
        self.assertEqual(len(self.locks), 0)


class RescheduleBookingTests(HandlerTestCase):
    def test_moves_booking_and_keeps_status(self) -> None:
        booking = self.book(10)

        moved = self.reschedule_handler().handle(
            RescheduleBookingCommand(booking.id, local(DAY + timedelta(days=1), 15), reason="Cliente atrasado")
        )

        stored = self.ledger.get(booking.id)
        self.assertEqual(moved.status, BookingStatus.PENDING)
        self.assertEqual(stored.slot.start, local(DAY + timedelta(days=1), 15))
        self.assertEqual(stored.booking_date, DAY + timedelta(days=1))
        self.assertIn("Cliente atrasado", stored.provider_notes)
        self.assertEqual(
            self.ledger.locked_keys[-1],
            ((PROVIDER_ID, SERVICE_ID, DAY), (PROVIDER_ID, SERVICE_ID, DAY + timedelta(days=1))),
        )
        self.assertEqual(self.uow.event_types, ["BookingReserved", "BookingRescheduled"])

    def test_frees_the_old_slot(self) -> None:
        booking = self.book(10)
        self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 14)))

        self.book(10, customer_id="43")

        self.assertEqual(len(self.ledger.bookings), 2)

    def test_conflict_leaves_booking_untouched(self) -> None:
        booking = self.book(10)
        self.book(14, customer_id="43")

        with self.assertRaises(SlotConflict):
            self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 14)))

        stored = self.ledger.get(booking.id)
        self.assertEqual(stored.slot.start, local(DAY, 10))
        self.assertEqual(stored.status, BookingStatus.PENDING)

    def test_overlap_with_itself_is_ignored(self) -> None:
        self.catalog = InMemoryServiceCatalog(bookable_service(buffer_minutes=30))
        booking = self.book(10)

        moved = self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 11)))

        self.assertEqual(moved.slot.start, local(DAY, 11))

    def test_terminal_booking_cannot_move(self) -> None:
        booking = self.book(10)
        self.cancel_handler().handle(CancelBookingCommand(booking.id, "Cambio de planes"))

        with self.assertRaises(PolicyViolation) as ctx:
            self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 12)))

        self.assertEqual(ctx.exception.rule, "reschedule_status")

    def test_new_interval_must_be_a_slot(self) -> None:
        booking = self.book(10)

        with self.assertRaises(PolicyViolation) as ctx:
            self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 20)))

        self.assertEqual(ctx.exception.rule, "slot_not_offered")

    def test_unknown_booking(self) -> None:
        booking = self.book(10)
        self.ledger.bookings.clear()

        with self.assertRaises(NotFoundError):
            self.reschedule_handler().handle(RescheduleBookingCommand(booking.id, local(DAY, 12)))


class CancelBookingTests(HandlerTestCase):
    def test_cancel_releases_capacity(self) -> None:
        booking = self.book(10)

        cancelled = self.cancel_handler().handle(CancelBookingCommand(booking.id, "Auto en taller"))

        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)
        self.assertEqual(cancelled.cancellation_reason, "Auto en taller")
        self.assertEqual(cancelled.cancelled_at, NOW)
        self.book(10, customer_id="43")
        self.assertEqual(self.uow.event_types, ["BookingReserved", "BookingCancelled", "BookingReserved"])

    def test_reason_is_required(self) -> None:
        booking = self.book(10)

        with self.assertRaises(PolicyViolation) as ctx:
            self.cancel_handler().handle(CancelBookingCommand(booking.id, "   "))

        self.assertEqual(ctx.exception.rule, "cancellation_reason_required")
        self.assertEqual(self.ledger.get(booking.id).status, BookingStatus.PENDING)

    def test_cannot_cancel_twice(self) -> None:
        booking = self.book(10)
        self.cancel_handler().handle(CancelBookingCommand(booking.id, "Cambio de planes"))

        with self.assertRaises(InvalidTransition):
            self.cancel_handler().handle(CancelBookingCommand(booking.id, "Otra vez"))

    def test_customer_cancellation_window(self) -> None:
        booking = self.book(10)
        policy = CancellationWindowPolicy(min_notice_hours=24)
        late = fixed_clock(local(DAY, 8))

        with self.assertRaises(PolicyViolation) as ctx:
            self.cancel_handler(policy=policy, clock=late).handle(CancelBookingCommand(booking.id, "Tarde"))
        self.assertEqual(ctx.exception.rule, "cancellation_window")

        cancelled = self.cancel_handler(policy=policy, clock=late).handle(
            CancelBookingCommand(booking.id, "Lluvia", by_provider=True)
        )
        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)

    def test_cancellation_inside_window_is_allowed(self) -> None:
        booking = self.book(10)
        policy = CancellationWindowPolicy(min_notice_hours=24)

        cancelled = self.cancel_handler(policy=policy).handle(CancelBookingCommand(booking.id, "Viaje"))

        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)


class ChangeBookingStatusTests(HandlerTestCase):
    def _change(self, booking, status: BookingStatus, reason: str = ""):
        return self.status_handler().handle(ChangeBookingStatusCommand(booking.id, status, reason))

    def test_confirm_then_complete(self) -> None:
        booking = self.book(10)

        self._change(booking, BookingStatus.CONFIRMED)
        completed = self._change(booking, BookingStatus.COMPLETED)

        self.assertEqual(completed.status, BookingStatus.COMPLETED)
        self.assertEqual(completed.confirmed_at, NOW)
        self.assertEqual(completed.completed_at, NOW)
        self.assertEqual(
            self.uow.event_types,
            ["BookingReserved", "BookingStatusChanged", "BookingStatusChanged"],
        )

    def test_reject_keeps_reason_in_provider_notes(self) -> None:
        booking = self.book(10)

        rejected = self._change(booking, BookingStatus.REJECTED, "Sin personal")

        self.assertEqual(rejected.status, BookingStatus.REJECTED)
        self.assertIn("Sin personal", rejected.provider_notes)

    def test_cancel_through_status_change_requires_reason(self) -> None:
        booking = self.book(10)

        with self.assertRaises(PolicyViolation):
            self._change(booking, BookingStatus.CANCELLED)

    def test_transition_table(self) -> None:
        allowed = {
            BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED},
            BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
        }
        for current in BookingStatus:
            for target in BookingStatus:
                with self.subTest(current=current, target=target):
                    self.assertEqual(
                        current.can_transition_to(target),
                        target in allowed.get(current, set()),
                    )

    def test_invalid_transition_is_rejected(self) -> None:
        booking = self.book(10)

        with self.assertRaises(InvalidTransition) as ctx:
            self._change(booking, BookingStatus.COMPLETED)

        self.assertEqual(ctx.exception.code, "invalid_transition")
        self.assertEqual(ctx.exception.details["current_status"], "pending")
        self.assertEqual(self.ledger.get(booking.id).status, BookingStatus.PENDING)

    def test_no_show_frees_capacity(self) -> None:
        booking = self.book(10)
        self._change(booking, BookingStatus.CONFIRMED)
        self._change(booking, BookingStatus.NO_SHOW)

        self.book(10, customer_id="43")

        self.assertEqual(len(self.ledger.bookings), 2)


class UpdateBookingDetailsTests(HandlerTestCase):
    def _update(self, booking, **fields):
        handler = UpdateBookingDetailsHandler(self.ledger, uow_factory=self.uow, clock=fixed_clock())
        return handler.handle(UpdateBookingDetailsCommand(booking.id, **fields))

    def test_sets_payment_status_and_notes(self) -> None:
        booking = self.book(10)

        updated = self._update(booking, payment_status=PaymentStatus.PAID, provider_notes="Pagó con tarjeta")

        stored = self.ledger.get(booking.id)
        self.assertEqual(stored.payment_status, PaymentStatus.PAID)
        self.assertEqual(stored.provider_notes, "Pagó con tarjeta")
        self.assertEqual(stored.status, BookingStatus.PENDING)
        self.assertEqual(stored.slot, booking.slot)
        self.assertEqual(updated.updated_at, NOW)
        self.assertEqual(self.uow.event_types[-1], "BookingDetailsUpdated")

    def test_omitted_fields_are_kept(self) -> None:
        booking = self.book(10)
        self._update(booking, provider_notes="Cliente frecuente")

        self._update(booking, payment_status=PaymentStatus.PARTIALLY_PAID)

        stored = self.ledger.get(booking.id)
        self.assertEqual(stored.provider_notes, "Cliente frecuente")
        self.assertEqual(stored.payment_status, PaymentStatus.PARTIALLY_PAID)

    def test_terminal_booking_can_be_refunded(self) -> None:
        booking = self.book(10)
        self.cancel_handler().handle(CancelBookingCommand(booking.id, reason="Lluvia"))

        self._update(booking, payment_status=PaymentStatus.REFUNDED)

        stored = self.ledger.get(booking.id)
        self.assertEqual(stored.status, BookingStatus.CANCELLED)
        self.assertEqual(stored.payment_status, PaymentStatus.REFUNDED)

    def test_no_change_publishes_nothing(self) -> None:
        booking = self.book(10)
        published = len(self.uow.published)

        self._update(booking, payment_status=PaymentStatus.PENDING)

        self.assertEqual(len(self.uow.published), published)

    def test_unknown_booking(self) -> None:
        handler = UpdateBookingDetailsHandler(self.ledger, uow_factory=self.uow, clock=fixed_clock())

        with self.assertRaises(NotFoundError):
            handler.handle(UpdateBookingDetailsCommand(uuid4(), provider_notes="Sin reserva"))
