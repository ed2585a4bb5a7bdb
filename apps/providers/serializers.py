"""Serializers for the providers domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import CalendarOverride, OperatingHours, Provider, Service


class ProviderSerializer(serializers.ModelSerializer):
    status_display = serializers.ReadOnlyField(source="get_status_display")

    class Meta:
        model = Provider
        fields = [
            "id",
            "business_name",
            "email",
            "phone",
            "timezone",
            "status",
            "status_display",
            "accepts_bookings",
            "auto_accept",
        ]
        read_only_fields = fields


class ServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = [
            "id",
            "provider",
            "name",
            "description",
            "price",
            "currency",
            "duration_minutes",
            "buffer_minutes",
            "max_capacity",
            "is_available",
        ]
        read_only_fields = fields


def _validate_open_close(attrs, instance=None):  # type: ignore
    is_open = attrs.get("is_open", getattr(instance, "is_open", True))
    open_time = attrs.get("open_time", getattr(instance, "open_time", None))
    close_time = attrs.get("close_time", getattr(instance, "close_time", None))
    if not is_open:
        attrs["open_time"] = None
        attrs["close_time"] = None
        return attrs
    if open_time is None or close_time is None:
        raise serializers.ValidationError("Un día abierto requiere hora de apertura y de cierre.")
    if open_time >= close_time:
        raise serializers.ValidationError("La hora de apertura debe ser anterior a la hora de cierre.")
    return attrs


class OperatingHoursSerializer(serializers.ModelSerializer):
    weekday_display = serializers.ReadOnlyField(source="get_weekday_display")

    class Meta:
        model = OperatingHours
        fields = ["weekday", "weekday_display", "is_open", "open_time", "close_time", "updated_at"]
        read_only_fields = ["weekday_display", "updated_at"]
        # the view upserts by weekday, so the unique check does not apply here
        validators: list = []

    def validate(self, attrs):  # type: ignore
        return _validate_open_close(attrs)


class WeeklyScheduleSerializer(serializers.Serializer):
    """Payload of ``PUT operating-hours``: one entry per weekday."""

    days = OperatingHoursSerializer(many=True)

    def validate_days(self, value):  # type: ignore
        weekdays = [day["weekday"] for day in value]
        if len(weekdays) != len(set(weekdays)):
            raise serializers.ValidationError("Cada día de la semana puede aparecer solo una vez.")
        return value


class CalendarOverrideSerializer(serializers.ModelSerializer):
    created_by = serializers.ReadOnlyField(source="created_by_id")

    class Meta:
        model = CalendarOverride
        fields = [
            "id",
            "date",
            "is_open",
            "open_time",
            "close_time",
            "reason",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_by", "created_at", "updated_at"]


class CalendarOverrideWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = CalendarOverride
        fields = ["date", "is_open", "open_time", "close_time", "reason"]

    def validate(self, attrs):  # type: ignore
        attrs = _validate_open_close(attrs, self.instance)
        provider = self.context.get("provider")
        target_date = attrs.get("date", getattr(self.instance, "date", None))
        if provider is not None and target_date is not None:
            clash = CalendarOverride.objects.filter(provider=provider, date=target_date)
            if self.instance is not None:
                clash = clash.exclude(pk=self.instance.pk)
            if clash.exists():
                raise serializers.ValidationError(
                    {"date": "Ya existe una excepción de calendario para esta fecha."}
                )
        return attrs
