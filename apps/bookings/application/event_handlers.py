"""Subscribers for booking domain events."""

from __future__ import annotations

import structlog  # type: ignore

from shared.application.message_bus import message_bus
from apps.bookings.domain.events import BookingEvent

audit_logger = structlog.get_logger("apps.bookings.audit")


def audit_booking_event(event: BookingEvent) -> None:
    """Write every committed booking event to the audit log."""
    payload = event.to_dict()
    event_type = payload.pop("event_type")
    audit_logger.info(f"booking.{event_type}", **payload)


def register() -> None:
    message_bus.register_event_handler(BookingEvent, audit_booking_event)
