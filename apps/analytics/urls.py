"""URL routing for analytics endpoints."""

from django.urls import path  # type: ignore

from .views import ProviderBookingStatsView


urlpatterns = [
    # Do not prefix with 'analytics/' here; the namespace is defined in config.urls
    path(
        'providers/<int:provider_id>/bookings/',
        ProviderBookingStatsView.as_view(),
        name='analytics-provider-bookings',
    ),
]
