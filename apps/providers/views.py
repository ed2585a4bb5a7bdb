"""Provider calendar API views."""

from __future__ import annotations

import logging

from django.db import transaction  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .models import CalendarOverride, OperatingHours, Provider
from .serializers import (
    CalendarOverrideSerializer,
    CalendarOverrideWriteSerializer,
    OperatingHoursSerializer,
    WeeklyScheduleSerializer,
)
from .services import apply_default_operating_hours

logger = logging.getLogger(__name__)


class IsProviderOwnerOrAdmin(permissions.BasePermission):
    """Reading is open to any authenticated user, writing to the owner and staff."""

    def has_object_permission(self, request, view, obj: Provider):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.is_managed_by(request.user)


class ProviderCalendarMixin:
    """Resolves the provider from the URL and checks permissions against it."""

    provider_lookup_url_kwarg = "provider_id"
    permission_classes = [permissions.IsAuthenticated, IsProviderOwnerOrAdmin]

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        provider_id = kwargs.get(self.provider_lookup_url_kwarg)
        self.provider_object = get_object_or_404(Provider, pk=provider_id)
        self.check_object_permissions(request, self.provider_object)

    def get_provider(self) -> Provider:
        return self.provider_object

    def get_serializer_context(self):  # type: ignore
        context = super().get_serializer_context()
        context["provider"] = getattr(self, "provider_object", None)
        return context


class OperatingHoursView(ProviderCalendarMixin, APIView):
    """Weekly default hours of a provider."""

    def get(self, request, provider_id):  # type: ignore
        hours = OperatingHours.objects.filter(provider=self.get_provider()).order_by("weekday")
        return Response(
            {
                "provider_id": self.get_provider().pk,
                "timezone": self.get_provider().timezone,
                "days": OperatingHoursSerializer(hours, many=True).data,
            }
        )

    def put(self, request, provider_id):  # type: ignore
        provider = self.get_provider()
        serializer = WeeklyScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            for day in serializer.validated_data["days"]:
                OperatingHours.objects.update_or_create(
                    provider=provider,
                    weekday=day["weekday"],
                    defaults={
                        "is_open": day.get("is_open", True),
                        "open_time": day.get("open_time"),
                        "close_time": day.get("close_time"),
                    },
                )
        logger.info(
            f"Operating hours of provider {provider.pk} updated by user {request.user.pk} "
            f"({len(serializer.validated_data['days'])} days)"
        )
        return self.get(request, provider_id)


class OperatingHoursDefaultsView(ProviderCalendarMixin, APIView):
    """Resets the weekly schedule to the configured onboarding defaults."""

    def post(self, request, provider_id):  # type: ignore
        rows = apply_default_operating_hours(self.get_provider())
        return Response(
            {
                "provider_id": self.get_provider().pk,
                "days": OperatingHoursSerializer(rows, many=True).data,
            },
            status=status.HTTP_200_OK,
        )


class CalendarOverrideViewSet(ProviderCalendarMixin, viewsets.ModelViewSet):
    """Holidays, closures and custom hours for specific dates."""

    serializer_class = CalendarOverrideSerializer
    queryset = CalendarOverride.objects.select_related("provider", "created_by").all()

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return CalendarOverrideWriteSerializer
        return CalendarOverrideSerializer

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset().filter(provider=self.get_provider())
        start = self.request.query_params.get("start")
        end = self.request.query_params.get("end")
        if start:
            qs = qs.filter(date__gte=start)
        if end:
            qs = qs.filter(date__lte=end)
        return qs.order_by("date")

    def perform_create(self, serializer):  # type: ignore
        serializer.save(provider=self.get_provider(), created_by=self.request.user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        read_serializer = CalendarOverrideSerializer(serializer.instance, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        read_serializer = CalendarOverrideSerializer(serializer.instance, context=self.get_serializer_context())
        return Response(read_serializer.data, status=status.HTTP_200_OK)
