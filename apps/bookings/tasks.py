"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import SchedulingError

from .application.command_handlers import ChangeBookingStatusCommand
from .domain.entities import BookingStatus
from .infrastructure.repositories import DjangoBookingLedger
from .services import change_status_handler

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="bookings.reject_stale_pending_bookings")
def reject_stale_pending_bookings() -> dict[str, int]:
    """
    Rechaza reservas PENDING cuyo inicio ya pasó sin respuesta del proveedor.

    Runs every 15 minutes through Celery Beat. Each booking goes through
    the status handler in its own transaction, so one failure does not
    block the rest.

    Returns:
        dict: {"rejected": count, "failed": count}
    """
    grace = settings.SCHEDULING.get("STALE_PENDING_GRACE_MINUTES", 30)
    cutoff = timezone.now() - timedelta(minutes=grace)
    handler = change_status_handler()
    rejected = failed = 0

    for booking_id in DjangoBookingLedger().stale_pending_ids(cutoff):
        try:
            handler.handle(
                ChangeBookingStatusCommand(
                    booking_id=booking_id,
                    status=BookingStatus.REJECTED,
                    reason="Rechazada automáticamente: el proveedor no respondió a tiempo",
                )
            )
            rejected += 1
        except SchedulingError as e:
            # confirmed or cancelled concurrently
            failed += 1
            logger.warning(f"Could not reject stale booking {booking_id}: {e.message}")

    if rejected:
        logger.info(f"Rejected {rejected} stale pending bookings")

    return {"rejected": rejected, "failed": failed}
