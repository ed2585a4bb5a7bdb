"""Read-side use cases. Safe to retry, they never write."""

from datetime import date, datetime
from typing import Optional
import logging

from shared.application.retry import retry_read
from shared.domain.base import utcnow
from apps.bookings.domain.availability import AvailabilityResolver

logger = logging.getLogger(__name__)


class AvailabilityQuery:
    """Availability of one service on one provider-local date."""

    def __init__(self, resolver: AvailabilityResolver):
        self.resolver = resolver

    @retry_read
    def execute(self, provider_id: int, service_id: int, day: date, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        # one snapshot drives both the slots and the top-level flag
        service = self.resolver.service_for(provider_id, service_id)
        slots = self.resolver.resolve_for(service, day, now=now)
        logger.debug(
            f"Availability for provider {provider_id}, service {service_id} on {day}: "
            f"{sum(1 for s in slots if s.available)}/{len(slots)} free"
        )
        return {
            'available': any(s.available for s in slots),
            'date': day.isoformat(),
            'provider_id': provider_id,
            'service_id': service_id,
            'duration_minutes': service.duration_minutes,
            'max_capacity': service.max_capacity,
            'slots': [s.to_dict() for s in slots],
        }
