"""
Stats Aggregator

Counts per status and derived rates over a provider-local date window.
Read-only: retried with backoff on transient store errors.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from shared.application.retry import retry_read
from shared.domain.exceptions import PolicyViolation
from apps.bookings.domain.entities import BookingStatus


def _rate(part: int, total: int) -> float:
    if not total:
        return 0.0
    return round(part / total, 4)


@dataclass(frozen=True)
class BookingStats:
    provider_id: int
    start_date: date
    end_date: date
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    rejected: int = 0
    no_show: int = 0
    revenue_aggregate: Decimal = Decimal('0')

    @property
    def completion_rate(self) -> float:
        return _rate(self.completed, self.total)

    @property
    def cancellation_rate(self) -> float:
        return _rate(self.cancelled, self.total)

    @property
    def no_show_rate(self) -> float:
        return _rate(self.no_show, self.total)

    def to_dict(self) -> dict:
        return {
            'provider_id': self.provider_id,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'total': self.total,
            'pending': self.pending,
            'confirmed': self.confirmed,
            'completed': self.completed,
            'cancelled': self.cancelled,
            'rejected': self.rejected,
            'no_show': self.no_show,
            'revenue_aggregate': str(self.revenue_aggregate),
            'completion_rate': self.completion_rate,
            'cancellation_rate': self.cancellation_rate,
            'no_show_rate': self.no_show_rate,
        }


class StatsAggregator:
    """Builds BookingStats from ``ledger.stats_rows``. Only completed bookings count as revenue."""

    def __init__(self, ledger):
        self.ledger = ledger

    @retry_read
    def stats(self, provider_id: int, start_date: date, end_date: date) -> BookingStats:
        if start_date > end_date:
            raise PolicyViolation(
                "start_date must not be after end_date",
                rule='date_range',
                details={'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
            )

        counts = {status: 0 for status in BookingStatus}
        revenue = Decimal('0')
        for row in self.ledger.stats_rows(provider_id, start_date, end_date):
            status = BookingStatus(row['status'])
            counts[status] += row['count']
            if status == BookingStatus.COMPLETED:
                revenue += row['revenue'] or Decimal('0')

        return BookingStats(
            provider_id=provider_id,
            start_date=start_date,
            end_date=end_date,
            total=sum(counts.values()),
            pending=counts[BookingStatus.PENDING],
            confirmed=counts[BookingStatus.CONFIRMED],
            completed=counts[BookingStatus.COMPLETED],
            cancelled=counts[BookingStatus.CANCELLED],
            rejected=counts[BookingStatus.REJECTED],
            no_show=counts[BookingStatus.NO_SHOW],
            revenue_aggregate=revenue,
        )
