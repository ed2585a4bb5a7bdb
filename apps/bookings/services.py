"""Wiring of booking use cases to the Django repositories."""

from __future__ import annotations

from .application.command_handlers import (
    CancelBookingHandler,
    ChangeBookingStatusHandler,
    CreateBookingHandler,
    RescheduleBookingHandler,
    UpdateBookingDetailsHandler,
)
from .application.queries import AvailabilityQuery
from .application.stats import StatsAggregator
from .domain.availability import AvailabilityResolver
from .domain.calendar import OperatingCalendar
from .domain.slots import SlotGenerator
from .infrastructure.repositories import (
    DjangoBookingLedger,
    DjangoCalendarRepository,
    DjangoServiceCatalog,
)


def slot_generator() -> SlotGenerator:
    return SlotGenerator(OperatingCalendar(DjangoCalendarRepository()))


def availability_query() -> AvailabilityQuery:
    resolver = AvailabilityResolver(slot_generator(), DjangoServiceCatalog(), DjangoBookingLedger())
    return AvailabilityQuery(resolver)


def create_booking_handler() -> CreateBookingHandler:
    return CreateBookingHandler(DjangoBookingLedger(), DjangoServiceCatalog(), slot_generator())


def reschedule_booking_handler() -> RescheduleBookingHandler:
    return RescheduleBookingHandler(DjangoBookingLedger(), DjangoServiceCatalog(), slot_generator())


def cancel_booking_handler() -> CancelBookingHandler:
    return CancelBookingHandler(DjangoBookingLedger())


def change_status_handler() -> ChangeBookingStatusHandler:
    return ChangeBookingStatusHandler(DjangoBookingLedger())


def update_details_handler() -> UpdateBookingDetailsHandler:
    return UpdateBookingDetailsHandler(DjangoBookingLedger())


def stats_aggregator() -> StatsAggregator:
    return StatsAggregator(DjangoBookingLedger())
