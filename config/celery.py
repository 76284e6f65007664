import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("ambassador_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Sweep holds whose lease ran out - every minute
    "cleanup-expired-holds": {
        "task": "inventory.cleanup_expired_holds",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Move finished stays to COMPLETED - every hour
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": 3600.0,
    },
}

app.conf.timezone = "Asia/Jerusalem"
