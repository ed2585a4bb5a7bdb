"""Admin registrations for providers domain."""

from __future__ import annotations

from django.contrib import admin

from .models import CalendarOverride, OperatingHours, Provider, Service


class ServiceInline(admin.TabularInline):
    model = Service
    extra = 0
    fields = ("name", "price", "duration_minutes", "buffer_minutes", "max_capacity", "is_available")


class OperatingHoursInline(admin.TabularInline):
    model = OperatingHours
    extra = 0
    max_num = 7
    fields = ("weekday", "is_open", "open_time", "close_time")


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ("business_name", "status", "timezone", "accepts_bookings", "auto_accept", "owner")
    list_filter = ("status", "accepts_bookings", "auto_accept")
    search_fields = ("business_name", "email", "phone")
    inlines = [ServiceInline, OperatingHoursInline]


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "provider", "price", "currency", "duration_minutes", "max_capacity", "is_available")
    list_filter = ("is_available", "currency")
    search_fields = ("name", "provider__business_name")


@admin.register(CalendarOverride)
class CalendarOverrideAdmin(admin.ModelAdmin):
    list_display = ("provider", "date", "is_open", "open_time", "close_time", "reason")
    list_filter = ("is_open",)
    search_fields = ("provider__business_name", "reason")
    date_hierarchy = "date"
