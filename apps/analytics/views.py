"""API views for analytics.

Booking counts, revenue and rates for one provider over a date window.
Only the provider owner and staff may read them.
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.permissions import IsAuthenticated  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings import services
from apps.bookings.serializers import StatsQuerySerializer
from apps.providers.models import Provider


class ProviderBookingStatsView(APIView):
    """Return booking statistics for a provider between start_date and end_date (inclusive)."""

    permission_classes = [IsAuthenticated]

    def get(self, request, provider_id, format=None):  # type: ignore
        provider = get_object_or_404(Provider, pk=provider_id)
        if not provider.is_managed_by(request.user):
            raise PermissionDenied("Solo el dueño del proveedor puede ver sus estadísticas.")

        params = StatsQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        stats = services.stats_aggregator().stats(
            provider.pk,
            params.validated_data["start_date"],
            params.validated_data["end_date"],
        )
        return Response(stats.to_dict())
