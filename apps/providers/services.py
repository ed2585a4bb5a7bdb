"""Onboarding helpers for the provider calendar."""

from __future__ import annotations

from datetime import time
import logging

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore

from .models import OperatingHours, Provider

logger = logging.getLogger(__name__)


def _parse_time(value) -> time:  # type: ignore
    if isinstance(value, time):
        return value
    return time.fromisoformat(value)


def default_weekly_hours() -> dict[int, tuple[time, time] | None]:
    """Read ``SCHEDULING["DEFAULT_OPERATING_HOURS"]`` as weekday -> (open, close) or None."""

    configured = settings.SCHEDULING.get("DEFAULT_OPERATING_HOURS", {})
    result: dict[int, tuple[time, time] | None] = {}
    for weekday in range(7):
        hours = configured.get(weekday, configured.get(str(weekday)))
        result[weekday] = (_parse_time(hours[0]), _parse_time(hours[1])) if hours else None
    return result


@transaction.atomic
def apply_default_operating_hours(provider: Provider) -> list[OperatingHours]:
    """Replace the weekly schedule of ``provider`` with the configured defaults."""

    rows = []
    for weekday, hours in default_weekly_hours().items():
        defaults = {
            "is_open": hours is not None,
            "open_time": hours[0] if hours else None,
            "close_time": hours[1] if hours else None,
        }
        row, _ = OperatingHours.objects.update_or_create(
            provider=provider,
            weekday=weekday,
            defaults=defaults,
        )
        rows.append(row)
    logger.info(f"Applied default operating hours to provider {provider.pk}")
    return rows
