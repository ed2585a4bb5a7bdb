"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.providers.models import Provider, Service

from .models import Booking


class BookingCreateSerializer(serializers.Serializer):
    """Solicitud de reserva de un horario."""

    provider = serializers.PrimaryKeyRelatedField(queryset=Provider.objects.all())
    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.all())
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False)
    customer_id = serializers.CharField(max_length=64, required=False)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    vehicle_info = serializers.JSONField(required=False, default=dict)
    customer_notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_vehicle_info(self, value):  # type: ignore
        if not isinstance(value, dict):
            raise serializers.ValidationError("vehicle_info debe ser un objeto.")
        return value

    def validate(self, attrs):  # type: ignore
        end_time = attrs.get("end_time")
        if end_time is not None and end_time <= attrs["start_time"]:
            raise serializers.ValidationError("La hora de término debe ser posterior a la de inicio.")
        return attrs


class BookingRescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingUpdateSerializer(serializers.Serializer):
    """Datos administrativos que el proveedor puede corregir."""

    payment_status = serializers.ChoiceField(choices=Booking.PaymentStatus.choices, required=False)
    provider_notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("Indica payment_status o provider_notes.")
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    """Detalle de una reserva."""

    provider_id = serializers.ReadOnlyField(source="provider.id")
    provider_name = serializers.ReadOnlyField(source="provider.business_name")
    service_id = serializers.ReadOnlyField(source="service.id")
    service_name = serializers.ReadOnlyField(source="service.name")
    status_display = serializers.ReadOnlyField(source="get_status_display")

    class Meta:
        model = Booking
        fields = [
            "id",
            "reference",
            "provider_id",
            "provider_name",
            "service_id",
            "service_name",
            "customer_id",
            "customer_name",
            "customer_phone",
            "customer_email",
            "vehicle_info",
            "booking_date",
            "start_time",
            "end_time",
            "status",
            "status_display",
            "payment_status",
            "total_price",
            "currency",
            "customer_notes",
            "provider_notes",
            "cancellation_reason",
            "confirmed_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    service_id = serializers.IntegerField(min_value=1)


class StatsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError("start_date no puede ser posterior a end_date.")
        return attrs
