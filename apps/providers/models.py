"""Provider domain models.

Proveedores de lavado, su catálogo de servicios y el calendario de
operación (horario semanal y excepciones por fecha).
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def default_timezone() -> str:
    return settings.SCHEDULING["DEFAULT_TIMEZONE"]


class Provider(models.Model):
    """Lavadero que publica servicios y recibe reservas."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pendiente de verificación")
        VERIFIED = "verified", _("Verificado")
        ACTIVE = "active", _("Activo")
        SUSPENDED = "suspended", _("Suspendido")

    BOOKABLE_STATUSES = (Status.VERIFIED, Status.ACTIVE)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="providers",
    )
    business_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    timezone = models.CharField(
        max_length=64,
        default=default_timezone,
        help_text=_("Zona horaria IANA en la que se interpretan los horarios."),
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    accepts_bookings = models.BooleanField(default=True)
    auto_accept = models.BooleanField(
        default=False,
        help_text=_("Las reservas nuevas quedan confirmadas sin revisión del proveedor."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Proveedor")
        verbose_name_plural = _("Proveedores")
        ordering = ["business_name"]
        indexes = [models.Index(fields=["status"])]

    def __str__(self) -> str:
        return self.business_name

    @property
    def is_bookable(self) -> bool:
        return self.status in self.BOOKABLE_STATUSES and self.accepts_bookings

    def is_managed_by(self, user) -> bool:  # type: ignore
        if not getattr(user, "is_authenticated", False):
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return self.owner_id is not None and self.owner_id == user.id


class Service(models.Model):
    """Servicio de lavado ofrecido por un proveedor."""

    provider = models.ForeignKey(Provider, on_delete=models.CASCADE, related_name="services")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="CLP")
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    buffer_minutes = models.PositiveIntegerField(
        default=0,
        help_text=_("Tiempo de preparación que se reserva después de cada atención."),
    )
    max_capacity = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("Reservas simultáneas que el proveedor puede atender."),
    )
    min_advance_booking_hours = models.PositiveIntegerField(null=True, blank=True)
    max_advance_booking_hours = models.PositiveIntegerField(null=True, blank=True)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Servicio")
        verbose_name_plural = _("Servicios")
        ordering = ["provider", "name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(duration_minutes__gt=0),
                name="service_positive_duration",
            ),
            models.CheckConstraint(
                condition=models.Q(max_capacity__gte=1),
                name="service_capacity_at_least_one",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.duration_minutes} min)"

    def clean(self) -> None:
        if (
            self.min_advance_booking_hours is not None
            and self.max_advance_booking_hours is not None
            and self.min_advance_booking_hours > self.max_advance_booking_hours
        ):
            raise ValidationError(_("La anticipación mínima no puede superar la máxima."))


class OperatingHours(models.Model):
    """Horario semanal por defecto (0=Lun ... 6=Dom)."""

    class Weekday(models.IntegerChoices):
        MONDAY = 0, _("Lunes")
        TUESDAY = 1, _("Martes")
        WEDNESDAY = 2, _("Miércoles")
        THURSDAY = 3, _("Jueves")
        FRIDAY = 4, _("Viernes")
        SATURDAY = 5, _("Sábado")
        SUNDAY = 6, _("Domingo")

    provider = models.ForeignKey(Provider, on_delete=models.CASCADE, related_name="operating_hours")
    weekday = models.PositiveSmallIntegerField(
        choices=Weekday.choices,
        validators=[MaxValueValidator(6)],
    )
    is_open = models.BooleanField(default=True)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Horario de atención")
        verbose_name_plural = _("Horarios de atención")
        ordering = ["provider", "weekday"]
        constraints = [
            models.UniqueConstraint(fields=["provider", "weekday"], name="unique_provider_weekday"),
            models.CheckConstraint(
                condition=models.Q(is_open=False) | models.Q(open_time__lt=models.F("close_time")),
                name="operating_hours_open_before_close",
            ),
        ]

    def __str__(self) -> str:
        if not self.is_open:
            return f"{self.provider}: {self.get_weekday_display()} cerrado"
        return f"{self.provider}: {self.get_weekday_display()} {self.open_time:%H:%M}-{self.close_time:%H:%M}"

    def clean(self) -> None:
        validate_hours(self.is_open, self.open_time, self.close_time)


class CalendarOverride(models.Model):
    """Excepción para una fecha: feriado, cierre o horario especial."""

    provider = models.ForeignKey(Provider, on_delete=models.CASCADE, related_name="calendar_overrides")
    date = models.DateField()
    is_open = models.BooleanField(default=False)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_calendar_overrides",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Excepción de calendario")
        verbose_name_plural = _("Excepciones de calendario")
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(fields=["provider", "date"], name="unique_provider_override_date"),
            models.CheckConstraint(
                condition=models.Q(is_open=False) | models.Q(open_time__lt=models.F("close_time")),
                name="override_open_before_close",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.provider}: {self.date} ({'abierto' if self.is_open else 'cerrado'})"

    def clean(self) -> None:
        validate_hours(self.is_open, self.open_time, self.close_time)


def validate_hours(is_open, open_time, close_time) -> None:  # type: ignore
    if not is_open:
        return
    if open_time is None or close_time is None:
        raise ValidationError(_("Un día abierto requiere hora de apertura y de cierre."))
    if open_time >= close_time:
        raise ValidationError(_("La hora de apertura debe ser anterior a la hora de cierre."))
