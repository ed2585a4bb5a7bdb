"""FilterSet for the booking list."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    provider = django_filters.NumberFilter(field_name="provider_id")
    service = django_filters.NumberFilter(field_name="service_id")
    customer_id = django_filters.CharFilter(field_name="customer_id")
    status = django_filters.MultipleChoiceFilter(choices=Booking.Status.choices)
    payment_status = django_filters.ChoiceFilter(choices=Booking.PaymentStatus.choices)
    start_date = django_filters.DateFilter(field_name="booking_date", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="booking_date", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = [
            "provider",
            "service",
            "customer_id",
            "status",
            "payment_status",
            "start_date",
            "end_date",
        ]
