"""
Django-backed repositories for the scheduling engine.

The ledger maps Booking rows to the Booking aggregate and back. Database
connectivity errors surface as TransientStoreError so callers can tell
"try again later" apart from a real conflict.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from functools import wraps
from typing import Iterable, List
import logging

from django.db import InterfaceError, OperationalError, transaction  # type: ignore
from django.db.models import Count, Sum  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.exceptions import NotFoundError, TransientStoreError
from shared.domain.value_objects import Money, TimeRange
from apps.bookings.domain.availability import BookableService
from apps.bookings.domain.calendar import DayHours, WeeklySchedule
from apps.bookings.domain.entities import ACTIVE_STATUSES, Booking, BookingStatus, PaymentStatus
from apps.bookings.models import Booking as BookingModel, BookingSlotLock
from apps.providers.models import CalendarOverride, OperatingHours, Provider, Service

logger = logging.getLogger(__name__)

ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_STATUSES]


def translate_store_errors(func):
    """Re-raise connection level database errors as TransientStoreError."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.warning(f"{func.__qualname__} failed with a transient database error: {exc}")
            raise TransientStoreError(
                "Booking store temporarily unavailable",
                details={'operation': func.__name__},
            ) from exc

    return wrapper


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class DjangoBookingLedger:
    """Durable record of bookings, the source of truth for conflict checks."""

    @translate_store_errors
    def count_overlapping(
        self,
        provider_id: int,
        service_id: int,
        slot: TimeRange,
        buffer_minutes: int = 0,
        exclude_booking_id=None,
    ) -> int:
        """
        Non-terminal bookings overlapping ``slot``.

        Both sides are padded by the buffer: [start, end + buffer).
        """
        buffer = timedelta(minutes=max(buffer_minutes, 0))
        qs = BookingModel.objects.filter(
            provider_id=provider_id,
            service_id=service_id,
            status__in=ACTIVE_STATUS_VALUES,
            start_time__lt=slot.end + buffer,
            end_time__gt=slot.start - buffer,
        )
        if exclude_booking_id is not None:
            qs = qs.exclude(pk=exclude_booking_id)
        return qs.count()

    @translate_store_errors
    def active_intervals(
        self,
        provider_id: int,
        service_id: int,
        window: TimeRange,
        buffer_minutes: int = 0,
    ) -> List[TimeRange]:
        """Intervals of non-terminal bookings whose padded interval touches ``window``."""
        buffer = timedelta(minutes=max(buffer_minutes, 0))
        rows = BookingModel.objects.filter(
            provider_id=provider_id,
            service_id=service_id,
            status__in=ACTIVE_STATUS_VALUES,
            start_time__lt=window.end,
            end_time__gt=window.start - buffer,
        ).order_by("start_time").values_list("start_time", "end_time")
        return [TimeRange(start, end) for start, end in rows]

    @translate_store_errors
    def lock(self, keys: Iterable[tuple]) -> None:
        """
        Lock one BookingSlotLock row per (provider, service, date) key.

        Keys are locked in sorted order so two writers needing the same
        pair of keys cannot deadlock. Must run inside a transaction.
        """
        for provider_id, service_id, day in sorted(set(keys)):
            row, _ = BookingSlotLock.objects.get_or_create(
                provider_id=provider_id,
                service_id=service_id,
                date=day,
            )
            list(_lock_queryset_if_possible(BookingSlotLock.objects.filter(pk=row.pk)))

    @translate_store_errors
    def get(self, booking_id, lock: bool = False) -> Booking:
        qs = BookingModel.objects.filter(pk=booking_id)
        if lock:
            qs = _lock_queryset_if_possible(qs)
        row = qs.first()
        if row is None:
            raise NotFoundError(f"Booking {booking_id} not found", details={'booking_id': str(booking_id)})
        return self._to_domain(row)

    @translate_store_errors
    def add(self, booking: Booking) -> None:
        fields = self._to_fields(booking)
        BookingModel.objects.create(id=booking.id, reference=booking.reference, **fields)

    @translate_store_errors
    def save(self, booking: Booking) -> None:
        fields = self._to_fields(booking)
        updated = BookingModel.objects.filter(pk=booking.id).update(**fields)
        if not updated:
            raise NotFoundError(f"Booking {booking.id} not found", details={'booking_id': str(booking.id)})

    @translate_store_errors
    def next_reference(self) -> str:
        reference = BookingModel.generate_reference()
        while BookingModel.objects.filter(reference=reference).exists():
            reference = BookingModel.generate_reference()
        return reference

    @translate_store_errors
    def stats_rows(self, provider_id: int, start_date: date, end_date: date) -> List[dict]:
        """``[{"status", "count", "revenue"}]`` for one provider, grouped by status."""
        return list(
            BookingModel.objects.filter(
                provider_id=provider_id,
                booking_date__gte=start_date,
                booking_date__lte=end_date,
            )
            .values("status")
            .annotate(count=Count("id"), revenue=Sum("total_price"))
            .order_by("status")
        )

    @translate_store_errors
    def stale_pending_ids(self, started_before) -> List:
        return list(
            BookingModel.objects.filter(
                status=BookingStatus.PENDING.value,
                start_time__lt=started_before,
            ).values_list("id", flat=True)
        )

    @staticmethod
    def _to_fields(booking: Booking) -> dict:
        return {
            "provider_id": booking.provider_id,
            "service_id": booking.service_id,
            "customer_id": booking.customer_id,
            "customer_name": booking.customer_name,
            "customer_phone": booking.customer_phone,
            "customer_email": booking.customer_email,
            "vehicle_info": booking.vehicle_info,
            "booking_date": booking.booking_date,
            "start_time": booking.slot.start,
            "end_time": booking.slot.end,
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "total_price": booking.total_price.amount,
            "currency": booking.total_price.currency,
            "customer_notes": booking.customer_notes,
            "provider_notes": booking.provider_notes,
            "cancellation_reason": booking.cancellation_reason,
            "confirmed_at": booking.confirmed_at,
            "completed_at": booking.completed_at,
            "cancelled_at": booking.cancelled_at,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
        }

    @staticmethod
    def _to_domain(row: BookingModel) -> Booking:
        return Booking(
            id=row.id,
            reference=row.reference,
            provider_id=row.provider_id,
            service_id=row.service_id,
            customer_id=row.customer_id,
            slot=TimeRange(row.start_time, row.end_time),
            booking_date=row.booking_date,
            total_price=Money(row.total_price or Decimal("0"), row.currency),
            customer_name=row.customer_name,
            customer_phone=row.customer_phone,
            customer_email=row.customer_email,
            vehicle_info=row.vehicle_info or {},
            customer_notes=row.customer_notes,
            provider_notes=row.provider_notes,
            status=BookingStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            cancellation_reason=row.cancellation_reason,
            confirmed_at=row.confirmed_at,
            completed_at=row.completed_at,
            cancelled_at=row.cancelled_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class DjangoCalendarRepository:
    """Loads a provider's WeeklySchedule from OperatingHours and CalendarOverride."""

    @translate_store_errors
    def get_schedule(self, provider_id: int, start_date: date, end_date: date) -> WeeklySchedule:
        provider = Provider.objects.filter(pk=provider_id).only("id", "timezone").first()
        if provider is None:
            raise NotFoundError(f"Provider {provider_id} not found", details={'provider_id': provider_id})

        weekly = {
            row.weekday: _day_hours(row.is_open, row.open_time, row.close_time)
            for row in OperatingHours.objects.filter(provider_id=provider_id)
        }
        overrides = {
            row.date: _day_hours(row.is_open, row.open_time, row.close_time)
            for row in CalendarOverride.objects.filter(
                provider_id=provider_id,
                date__gte=start_date,
                date__lte=end_date,
            )
        }
        return WeeklySchedule(
            provider_id=provider.pk,
            timezone=provider.timezone,
            weekly=weekly,
            overrides=overrides,
        )


def _day_hours(is_open, open_time, close_time):  # type: ignore
    if not is_open or open_time is None or close_time is None or open_time >= close_time:
        return None
    return DayHours(open_time, close_time)


class DjangoServiceCatalog:
    """Read-only view of Service rows as BookableService snapshots."""

    @translate_store_errors
    def get_service(self, service_id: int) -> BookableService:
        service = Service.objects.select_related("provider").filter(pk=service_id).first()
        if service is None:
            raise NotFoundError(f"Service {service_id} not found", details={'service_id': service_id})
        provider = service.provider
        return BookableService(
            service_id=service.pk,
            provider_id=service.provider_id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            max_capacity=service.max_capacity,
            buffer_minutes=service.buffer_minutes,
            price=Money(service.price, service.currency),
            min_advance_hours=service.min_advance_booking_hours,
            max_advance_hours=service.max_advance_booking_hours,
            is_available=service.is_available,
            provider_bookable=provider.is_bookable,
            auto_accept=provider.auto_accept,
        )
