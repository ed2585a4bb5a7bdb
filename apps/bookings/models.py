"""Booking ledger models."""

from __future__ import annotations

import secrets
import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Reserva de un servicio de lavado en un horario concreto."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pendiente")
        CONFIRMED = "confirmed", _("Confirmada")
        COMPLETED = "completed", _("Completada")
        CANCELLED = "cancelled", _("Cancelada")
        REJECTED = "rejected", _("Rechazada")
        NO_SHOW = "no_show", _("No se presentó")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pendiente de pago")
        PAID = "paid", _("Pagada")
        PARTIALLY_PAID = "partially_paid", _("Pago parcial")
        REFUNDED = "refunded", _("Reembolsada")
        FAILED = "failed", _("Pago fallido")

    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference = models.CharField(max_length=20, unique=True, editable=False)
    provider = models.ForeignKey(
        "providers.Provider",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    service = models.ForeignKey(
        "providers.Service",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    customer_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text=_("Identificador del cliente en el sistema de identidad externo."),
    )
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)
    vehicle_info = models.JSONField(default=dict, blank=True)
    booking_date = models.DateField(help_text=_("Fecha local del proveedor."))
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="CLP")
    customer_notes = models.TextField(blank=True)
    provider_notes = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Reserva")
        verbose_name_plural = _("Reservas")
        ordering = ["-start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_interval",
            ),
        ]
        indexes = [
            models.Index(fields=["provider", "service", "start_time", "end_time"]),
            models.Index(fields=["provider", "booking_date"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.reference} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    @staticmethod
    def generate_reference() -> str:
        return f"CW{secrets.token_hex(4).upper()}"


class BookingSlotLock(models.Model):
    """
    One row per (provider, service, date).

    Writers lock it with SELECT ... FOR UPDATE before counting overlaps,
    which serializes check-then-insert for that key across processes.
    """

    provider = models.ForeignKey("providers.Provider", on_delete=models.CASCADE, related_name="+")
    service = models.ForeignKey("providers.Service", on_delete=models.CASCADE, related_name="+")
    date = models.DateField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["provider", "service", "date"], name="unique_booking_slot_lock"),
        ]

    def __str__(self) -> str:
        return f"lock {self.provider_id}/{self.service_id}/{self.date}"
