import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("court_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Unpaid bookings past their payment window - every minute
    "expire-unpaid-bookings": {
        "task": "bookings.expire_unpaid_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # CONFIRMED -> ACTIVE -> COMPLETED, slots start on a 30 minute grid
    "advance-booking-lifecycle": {
        "task": "bookings.advance_booking_lifecycle",
        "schedule": crontab(minute="*/5"),
    },
}
