"""Tests for provider operating hours and calendar override API."""

from __future__ import annotations

from datetime import date, time, timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.providers.models import CalendarOverride, OperatingHours, Provider

User = get_user_model()


class ProviderCalendarAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(username="lavado-owner", password="StrongPass123")
        self.stranger = User.objects.create_user(username="stranger", password="StrongPass123")
        self.provider = Provider.objects.create(
            owner=self.owner,
            business_name="Lavado Express Providencia",
            status=Provider.Status.ACTIVE,
        )
        self.client.force_authenticate(self.owner)

    def _hours_url(self, provider_id=None):
        return reverse("provider-operating-hours", kwargs={"provider_id": provider_id or self.provider.id})

    def _defaults_url(self, provider_id=None):
        return reverse(
            "provider-operating-hours-defaults",
            kwargs={"provider_id": provider_id or self.provider.id},
        )

    def _overrides_url(self, provider_id=None):
        return reverse(
            "provider-calendar-override-list",
            kwargs={"provider_id": provider_id or self.provider.id},
        )

    def test_default_hours_created_with_provider(self) -> None:
        hours = {row.weekday: row for row in OperatingHours.objects.filter(provider=self.provider)}

        self.assertEqual(len(hours), 7)
        self.assertEqual(hours[0].open_time, time(9, 0))
        self.assertEqual(hours[0].close_time, time(18, 0))
        self.assertEqual(hours[5].close_time, time(14, 0))
        self.assertFalse(hours[6].is_open)
        self.assertIsNone(hours[6].open_time)

    def test_get_weekly_hours(self) -> None:
        response = self.client.get(self._hours_url())

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["timezone"], "America/Santiago")
        self.assertEqual([day["weekday"] for day in response.data["days"]], list(range(7)))

    def test_owner_can_update_weekly_hours(self) -> None:
        payload = {
            "days": [
                {"weekday": 0, "is_open": True, "open_time": "08:00", "close_time": "20:00"},
                {"weekday": 6, "is_open": True, "open_time": "10:00", "close_time": "13:00"},
            ]
        }

        response = self.client.put(self._hours_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        monday = OperatingHours.objects.get(provider=self.provider, weekday=0)
        sunday = OperatingHours.objects.get(provider=self.provider, weekday=6)
        self.assertEqual((monday.open_time, monday.close_time), (time(8, 0), time(20, 0)))
        self.assertTrue(sunday.is_open)
        # untouched days keep their defaults
        self.assertEqual(OperatingHours.objects.get(provider=self.provider, weekday=1).close_time, time(18, 0))

    def test_closing_a_day_clears_its_times(self) -> None:
        payload = {"days": [{"weekday": 2, "is_open": False, "open_time": "09:00", "close_time": "18:00"}]}

        response = self.client.put(self._hours_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        wednesday = OperatingHours.objects.get(provider=self.provider, weekday=2)
        self.assertFalse(wednesday.is_open)
        self.assertIsNone(wednesday.open_time)

    def test_rejects_open_after_close(self) -> None:
        payload = {"days": [{"weekday": 1, "is_open": True, "open_time": "19:00", "close_time": "09:00"}]}

        response = self.client.put(self._hours_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(OperatingHours.objects.get(provider=self.provider, weekday=1).open_time, time(9, 0))

    def test_rejects_duplicate_weekdays(self) -> None:
        payload = {
            "days": [
                {"weekday": 1, "is_open": True, "open_time": "09:00", "close_time": "12:00"},
                {"weekday": 1, "is_open": True, "open_time": "13:00", "close_time": "18:00"},
            ]
        }

        response = self.client.put(self._hours_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_stranger_cannot_change_hours(self) -> None:
        self.client.force_authenticate(self.stranger)
        payload = {"days": [{"weekday": 0, "is_open": False}]}

        response = self.client.put(self._hours_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(OperatingHours.objects.get(provider=self.provider, weekday=0).is_open)

    def test_reset_to_defaults(self) -> None:
        OperatingHours.objects.filter(provider=self.provider).update(is_open=False, open_time=None, close_time=None)

        response = self.client.post(self._defaults_url())

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(OperatingHours.objects.filter(provider=self.provider, is_open=True).count(), 6)

    def test_unknown_provider_returns_404(self) -> None:
        response = self.client.get(self._hours_url(provider_id=999999))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_owner_can_create_holiday_override(self) -> None:
        holiday = date.today() + timedelta(days=10)
        payload = {"date": str(holiday), "is_open": False, "reason": "Feriado"}

        response = self.client.post(self._overrides_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        override = CalendarOverride.objects.get(provider=self.provider)
        self.assertEqual(override.date, holiday)
        self.assertFalse(override.is_open)
        self.assertEqual(override.created_by, self.owner)

    def test_one_override_per_date(self) -> None:
        day = date.today() + timedelta(days=4)
        CalendarOverride.objects.create(provider=self.provider, date=day, is_open=False)
        payload = {"date": str(day), "is_open": True, "open_time": "10:00", "close_time": "12:00"}

        response = self.client.post(self._overrides_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("date", response.data)

    def test_open_override_requires_valid_hours(self) -> None:
        payload = {
            "date": str(date.today() + timedelta(days=2)),
            "is_open": True,
            "open_time": "15:00",
            "close_time": "11:00",
        }

        response = self.client.post(self._overrides_url(), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_list_overrides_filtered_by_range(self) -> None:
        base = date.today() + timedelta(days=1)
        for offset in (0, 5, 20):
            CalendarOverride.objects.create(provider=self.provider, date=base + timedelta(days=offset))

        response = self.client.get(
            self._overrides_url(),
            {"start": str(base), "end": str(base + timedelta(days=10))},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        results = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual(len(results), 2)
