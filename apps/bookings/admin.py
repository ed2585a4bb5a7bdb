"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "reference",
        "provider",
        "service",
        "customer_id",
        "status",
        "payment_status",
        "booking_date",
        "start_time",
        "end_time",
        "total_price",
    )
    list_filter = ("status", "payment_status", "booking_date")
    search_fields = ("reference", "provider__business_name", "customer_id", "customer_email")
    date_hierarchy = "booking_date"
    # anything that changes status, interval or capacity goes through the booking API
    readonly_fields = (
        "reference",
        "provider",
        "service",
        "customer_id",
        "total_price",
        "currency",
        "cancellation_reason",
        "status",
        "start_time",
        "end_time",
        "booking_date",
        "confirmed_at",
        "completed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
