"""URL routing for the providers domain."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import CalendarOverrideViewSet, OperatingHoursDefaultsView, OperatingHoursView

override_list = CalendarOverrideViewSet.as_view({"get": "list", "post": "create"})
override_detail = CalendarOverrideViewSet.as_view(
    {"patch": "partial_update", "put": "update", "delete": "destroy", "get": "retrieve"}
)

urlpatterns = [
    path(
        "<int:provider_id>/operating-hours/",
        OperatingHoursView.as_view(),
        name="provider-operating-hours",
    ),
    path(
        "<int:provider_id>/operating-hours/defaults/",
        OperatingHoursDefaultsView.as_view(),
        name="provider-operating-hours-defaults",
    ),
    path(
        "<int:provider_id>/calendar/overrides/",
        override_list,
        name="provider-calendar-override-list",
    ),
    path(
        "<int:provider_id>/calendar/overrides/<int:pk>/",
        override_detail,
        name="provider-calendar-override-detail",
    ),
]
