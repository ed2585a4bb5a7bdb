"""Tests for booking event subscribers."""

from __future__ import annotations

from uuid import uuid4

from django.test import SimpleTestCase

from shared.application.message_bus import message_bus
from shared.domain.value_objects import TimeRange
from apps.bookings.application.event_handlers import audit_booking_event, register
from apps.bookings.domain.events import BookingCancelled, BookingReserved

from .fakes import DAY, PROVIDER_ID, SERVICE_ID, local


def reserved_event() -> BookingReserved:
    booking_id = uuid4()
    return BookingReserved(
        aggregate_id=booking_id,
        booking_id=booking_id,
        provider_id=PROVIDER_ID,
        service_id=SERVICE_ID,
        customer_id="42",
        reference="CW0000ABCD",
        slot=TimeRange.starting_at(local(DAY, 10), 60),
        status="pending",
    )


class AuditSubscriberTests(SimpleTestCase):
    def test_registered_for_every_booking_event(self) -> None:
        register()

        self.assertIn(audit_booking_event, message_bus.handlers_for(reserved_event()))
        self.assertEqual(message_bus.handlers_for(reserved_event()).count(audit_booking_event), 1)

    def test_event_payload(self) -> None:
        event = reserved_event()

        payload = event.to_dict()

        self.assertEqual(payload["event_type"], "BookingReserved")
        self.assertEqual(payload["booking_id"], str(event.booking_id))
        self.assertEqual(payload["slot"], {"start": local(DAY, 10).isoformat(), "end": local(DAY, 11).isoformat()})

    def test_cancelled_payload_keeps_reason(self) -> None:
        booking_id = uuid4()
        event = BookingCancelled(
            booking_id=booking_id,
            provider_id=PROVIDER_ID,
            service_id=SERVICE_ID,
            reason="Lluvia",
            old_status="confirmed",
            slot=TimeRange.starting_at(local(DAY, 10), 60),
        )

        audit_booking_event(event)

        self.assertEqual(event.to_dict()["reason"], "Lluvia")
        self.assertEqual(event.to_dict()["old_status"], "confirmed")
