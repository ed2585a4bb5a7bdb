"""API views for the booking domain."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.providers.models import Provider

from . import services
from .application.command_handlers import (
    CancelBookingCommand,
    ChangeBookingStatusCommand,
    CreateBookingCommand,
    RescheduleBookingCommand,
    UpdateBookingDetailsCommand,
)
from .domain.entities import BookingStatus, PaymentStatus
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingReasonSerializer,
    BookingRescheduleSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
)

STATUS_ACTIONS = {
    "confirm": BookingStatus.CONFIRMED,
    "reject": BookingStatus.REJECTED,
    "complete": BookingStatus.COMPLETED,
    "no_show": BookingStatus.NO_SHOW,
}


def customer_key(user) -> str:  # type: ignore
    return str(user.pk)


class IsBookingStakeholder(permissions.BasePermission):
    """El cliente, el dueño del proveedor y el personal acceden a la reserva."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if obj.provider.is_managed_by(user):
            return True
        return obj.customer_id == customer_key(user)


class IsBookingProvider(permissions.BasePermission):
    """Solo el dueño del proveedor o el personal cambian el estado."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        return obj.provider.is_managed_by(request.user)


PROVIDER_PERMISSIONS = [permissions.IsAuthenticated, IsBookingProvider]


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset para crear y gestionar reservas. Las reservas nunca se eliminan."""

    queryset = Booking.objects.select_related("provider", "service").all()
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = BookingFilterSet
    ordering_fields = ["start_time", "created_at", "status"]
    ordering = ["start_time"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "reschedule":
            return BookingRescheduleSerializer
        if self.action == "partial_update":
            return BookingUpdateSerializer
        if self.action in {"cancel", *STATUS_ACTIONS}:
            return BookingReasonSerializer
        return BookingSerializer

    def get_permissions(self):  # type: ignore
        if self.action == "partial_update":
            return [permission() for permission in PROVIDER_PERMISSIONS]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(Q(provider__owner=user) | Q(customer_id=customer_key(user)))

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        provider: Provider = data["provider"]

        customer_id = data.get("customer_id") or customer_key(request.user)
        if customer_id != customer_key(request.user) and not provider.is_managed_by(request.user):
            return Response(
                {"detail": "Solo el proveedor puede reservar a nombre de otro cliente."},
                status=status.HTTP_403_FORBIDDEN,
            )

        booking = services.create_booking_handler().handle(
            CreateBookingCommand(
                provider_id=provider.pk,
                service_id=data["service"].pk,
                customer_id=customer_id,
                start_time=data["start_time"],
                end_time=data.get("end_time"),
                customer_name=data.get("customer_name", ""),
                customer_phone=data.get("customer_phone", ""),
                customer_email=data.get("customer_email", ""),
                vehicle_info=data.get("vehicle_info") or {},
                customer_notes=data.get("customer_notes", ""),
            )
        )
        read_serializer = BookingSerializer(
            Booking.objects.select_related("provider", "service").get(pk=booking.id),
            context=self.get_serializer_context(),
        )
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def _respond(self, booking_id):  # type: ignore
        instance = Booking.objects.select_related("provider", "service").get(pk=booking_id)
        return Response(BookingSerializer(instance, context=self.get_serializer_context()).data)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        """Pago y notas del proveedor. El estado y el horario no cambian por aquí."""
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_status = serializer.validated_data.get("payment_status")
        services.update_details_handler().handle(
            UpdateBookingDetailsCommand(
                booking_id=booking.pk,
                payment_status=PaymentStatus(payment_status) if payment_status else None,
                provider_notes=serializer.validated_data.get("provider_notes"),
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.cancel_booking_handler().handle(
            CancelBookingCommand(
                booking_id=booking.pk,
                reason=serializer.validated_data["reason"],
                by_provider=booking.provider.is_managed_by(request.user),
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.reschedule_booking_handler().handle(
            RescheduleBookingCommand(
                booking_id=booking.pk,
                start_time=serializer.validated_data["start_time"],
                end_time=serializer.validated_data.get("end_time"),
                reason=serializer.validated_data["reason"],
            )
        )
        return self._respond(booking.pk)

    def _change_status(self, request, target: BookingStatus):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.change_status_handler().handle(
            ChangeBookingStatusCommand(
                booking_id=booking.pk,
                status=target,
                reason=serializer.validated_data["reason"],
            )
        )
        return self._respond(booking.pk)

    @action(detail=True, methods=["post"], permission_classes=PROVIDER_PERMISSIONS)
    def confirm(self, request, pk=None):  # type: ignore
        return self._change_status(request, STATUS_ACTIONS["confirm"])

    @action(detail=True, methods=["post"], permission_classes=PROVIDER_PERMISSIONS)
    def reject(self, request, pk=None):  # type: ignore
        return self._change_status(request, STATUS_ACTIONS["reject"])

    @action(detail=True, methods=["post"], permission_classes=PROVIDER_PERMISSIONS)
    def complete(self, request, pk=None):  # type: ignore
        return self._change_status(request, STATUS_ACTIONS["complete"])

    @action(detail=True, methods=["post"], url_path="no-show", permission_classes=PROVIDER_PERMISSIONS)
    def no_show(self, request, pk=None):  # type: ignore
        return self._change_status(request, STATUS_ACTIONS["no_show"])


class AvailabilityView(APIView):
    """Horarios disponibles de un servicio en una fecha local del proveedor."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, provider_id):  # type: ignore
        params = AvailabilityQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        get_object_or_404(Provider, pk=provider_id)
        result = services.availability_query().execute(
            provider_id,
            params.validated_data["service_id"],
            params.validated_data["date"],
        )
        return Response(result)
