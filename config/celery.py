import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("carwash_scheduling")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # PENDING bookings whose start passed without an answer
    "reject-stale-pending-bookings": {
        "task": "bookings.reject_stale_pending_bookings",
        "schedule": crontab(minute="*/15"),
        "options": {"expires": 600},
    },
}
